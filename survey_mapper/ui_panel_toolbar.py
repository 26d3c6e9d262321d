from __future__ import annotations

import tkinter as tk
from tkinter import ttk
from typing import Callable, Dict

from .controller import DRAW_TOOL, PaletteTool
from .data_model import MARKER_STYLES, MarkerType


class ToolbarPanel:
    def __init__(
        self,
        owner,
        parent: tk.Widget,
        *,
        on_tool: Callable[[PaletteTool], None],
        on_finish_draw: Callable[[], None],
    ) -> None:
        self.owner = owner
        self.frame = ttk.Frame(parent)
        self.frame.pack(side="top", fill="x")
        self.buttons: Dict[str, ttk.Button] = {}

        ttk.Label(self.frame, text="Toolkit:").pack(side="left")
        for mtype in MarkerType:
            style = MARKER_STYLES[mtype]
            btn = ttk.Button(
                self.frame,
                text=f"{style.glyph} {style.label}",
                command=lambda t=mtype: on_tool(t),
            )
            btn.pack(side="left", padx=(8, 0))
            self.buttons[mtype.value] = btn

        ttk.Separator(self.frame, orient="vertical").pack(side="left", fill="y", padx=10)
        self.draw_btn = ttk.Button(self.frame, text="新增坵塊", command=lambda: on_tool(DRAW_TOOL))
        self.draw_btn.pack(side="left")
        self.finish_btn = ttk.Button(self.frame, text="完成坵塊", command=on_finish_draw, state="disabled")
        self.finish_btn.pack(side="left", padx=(8, 0))

        owner.area_var = tk.StringVar(value="")
        ttk.Label(self.frame, textvariable=owner.area_var).pack(side="right")

    def sync(self, *, editing: bool, drawing: bool) -> None:
        state = "normal" if editing else "disabled"
        for btn in self.buttons.values():
            btn.configure(state=state)
        self.draw_btn.configure(state=state, text="繪製中…" if drawing else "新增坵塊")
        self.finish_btn.configure(state="normal" if (editing and drawing) else "disabled")
