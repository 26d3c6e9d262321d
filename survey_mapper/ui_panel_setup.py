from __future__ import annotations

import tkinter as tk
from tkinter import ttk
from typing import Callable


class SetupPanel:
    def __init__(
        self,
        owner,
        parent: tk.Widget,
        *,
        on_back: Callable[[], None],
        on_batch_import: Callable[[str], None],
        on_export: Callable[[], None],
        on_reset: Callable[[], None],
    ) -> None:
        self.owner = owner
        frame = ttk.Frame(parent, padding=8)
        self.frame = frame

        hdr = ttk.Frame(frame)
        hdr.pack(side="top", fill="x")
        ttk.Button(hdr, text="←", width=3, command=on_back).pack(side="left")
        ttk.Label(hdr, text="管理員中心", font=("TkDefaultFont", 14, "bold")).pack(side="left", padx=(8, 0))

        name_frm = ttk.Frame(frame)
        name_frm.pack(side="top", fill="x", pady=(12, 0))
        ttk.Label(name_frm, text="專案名稱:").pack(side="left")
        self.name_var = tk.StringVar(value="")
        self.name_entry = name = ttk.Entry(name_frm, textvariable=self.name_var)
        name.pack(side="left", fill="x", expand=True, padx=(6, 0))
        name.bind("<FocusOut>", lambda _e: self._commit_name())
        name.bind("<Return>", lambda _e: self._commit_name())

        step1 = ttk.LabelFrame(frame, text="STEP 1  批次匯入現勘名單", padding=8)
        step1.pack(side="top", fill="both", expand=True, pady=(12, 0))
        ttk.Label(step1, text="請輸入名單資料 (格式：編號,業主,現勘圖網址)").pack(side="top", anchor="w")
        self.batch_text = tk.Text(step1, height=8, wrap="none", font=("TkFixedFont", 10))
        self.batch_text.pack(side="top", fill="both", expand=True, pady=(6, 0))
        ttk.Button(
            step1,
            text="確認匯入並新增至清單",
            command=lambda: on_batch_import(self.batch_text.get("1.0", "end-1c")),
        ).pack(side="top", fill="x", pady=(6, 0))

        step2 = ttk.LabelFrame(frame, text="STEP 2  產生分享專案檔", padding=8)
        step2.pack(side="top", fill="x", pady=(12, 0))
        ttk.Label(step2, text="匯出 .farmland 檔案後傳送給巡查人員，對方「載入」即可開始工作。",
                  wraplength=600).pack(side="top", anchor="w")
        ttk.Button(step2, text="匯出專案分享檔", command=on_export).pack(side="top", fill="x", pady=(6, 0))

        reset = ttk.LabelFrame(frame, text="重置區域", padding=8)
        reset.pack(side="top", fill="x", pady=(12, 0))
        ttk.Button(reset, text="清空目前資料庫所有任務", command=on_reset).pack(side="left")

    def refresh(self) -> None:
        if self.owner.focus_get() is self.name_entry:
            return
        self.name_var.set(self.owner.store.state.project_name)

    def clear_batch(self) -> None:
        self.batch_text.delete("1.0", "end")

    def _commit_name(self) -> None:
        name = self.name_var.get().strip()
        if name and name != self.owner.store.state.project_name:
            self.owner.store.set_project_name(name)
