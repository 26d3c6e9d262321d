from __future__ import annotations

import tkinter as tk
from tkinter import ttk
from typing import Callable, List

from .data_model import STATUS_LABELS, Task


class TaskListPanel:
    def __init__(
        self,
        owner,
        parent: tk.Widget,
        *,
        on_open: Callable[[str], None],
        on_import: Callable[[], None],
        on_setup: Callable[[], None],
    ) -> None:
        self.owner = owner
        self._on_open = on_open
        frame = ttk.Frame(parent, padding=8)
        self.frame = frame

        hdr = ttk.Frame(frame)
        hdr.pack(side="top", fill="x")
        self.title_var = tk.StringVar(value="")
        self.progress_var = tk.StringVar(value="")
        ttk.Label(hdr, textvariable=self.title_var, font=("TkDefaultFont", 14, "bold")).pack(side="left")
        ttk.Label(hdr, textvariable=self.progress_var).pack(side="left", padx=(12, 0))
        ttk.Button(hdr, text="管理中心", command=on_setup).pack(side="right")
        ttk.Button(hdr, text="載入專案檔", command=on_import).pack(side="right", padx=(0, 8))

        self.search_var = tk.StringVar(value="")
        search = ttk.Entry(frame, textvariable=self.search_var)
        search.pack(side="top", fill="x", pady=(8, 0))
        self.search_var.trace_add("write", lambda *_: self.refresh())

        self.tree = ttk.Treeview(
            frame,
            columns=("code", "owner", "year", "status"),
            show="headings",
            selectmode="browse",
        )
        self.tree.heading("code", text="編號")
        self.tree.heading("owner", text="業主")
        self.tree.heading("year", text="年度")
        self.tree.heading("status", text="狀態")
        self.tree.column("code", width=100, anchor="w")
        self.tree.column("owner", width=220, anchor="w")
        self.tree.column("year", width=60, anchor="center")
        self.tree.column("status", width=80, anchor="center")
        self.tree.pack(side="top", fill="both", expand=True, pady=(8, 0))
        self.tree.bind("<Double-1>", self._on_double_click)
        self.tree.bind("<Return>", self._on_double_click)

        self.empty_label = ttk.Label(
            frame,
            text="尚未載入現勘任務。請點擊「管理中心」建立新名單，或點擊「載入專案檔」匯入現有的調查計畫。",
            wraplength=600,
        )

    def refresh(self) -> None:
        store = self.owner.store
        st = store.state
        self.title_var.set(st.project_name)
        self.progress_var.set(f"{store.completed_count()} / {len(st.tasks)} 筆已完成")
        tasks: List[Task] = store.search(self.search_var.get())
        for item in self.tree.get_children(""):
            self.tree.delete(item)
        for t in tasks:
            self.tree.insert("", "end", iid=t.id, values=(t.code, t.owner, t.year, STATUS_LABELS[t.status]))
        if st.tasks:
            self.empty_label.pack_forget()
        else:
            self.empty_label.pack(side="top", fill="x", pady=(8, 0))

    def _on_double_click(self, _evt=None):
        sel = self.tree.selection()
        if sel:
            self._on_open(sel[0])
