from __future__ import annotations

import tkinter as tk
from tkinter import ttk
from typing import Optional, Tuple

import numpy as np
from PIL import Image, ImageTk

from .controller import DELETE_HANDLE_OFFSET, DELETE_HIT_RADIUS, DRAW_TOOL, MARKER_HIT_RADIUS
from .cv_utils import hex_to_rgb, load_base_image, mask_overlay, region_area_pct, region_mask
from .data_model import MARKER_STYLES, Task
from .geometry import ContainerRect, Point

RANGE_COLOR = "#10B981"
MARKER_R = 11
DELETE_R = int(DELETE_HIT_RADIUS)


class MapPanel:
    def __init__(self, owner, parent: tk.Widget, *, actor) -> None:
        self.owner = owner
        self.actor = actor

        frame = ttk.Frame(parent)
        self.frame = frame
        frame.pack(side="top", fill="both", expand=True)

        owner.tip_var = tk.StringVar(value="")
        ttk.Label(frame, textvariable=owner.tip_var, wraplength=900, justify="left").pack(side="top", fill="x", pady=(8, 0))

        owner.canvas = tk.Canvas(frame, background="#111", highlightthickness=1, highlightbackground="#333")
        owner.canvas.pack(side="bottom", fill="both", expand=True, pady=(8, 0))
        owner.canvas.bind("<Configure>", actor._on_canvas_configure)
        # move/release are captured on the window for the duration of a drag
        owner.canvas.bind("<ButtonPress-1>", actor._on_press)


class MapActor:
    def __init__(self, owner) -> None:
        object.__setattr__(self, "owner", owner)

    def __getattr__(self, name):
        return getattr(self.owner, name)

    def __setattr__(self, name, value) -> None:
        if name == "owner":
            object.__setattr__(self, name, value)
            return
        setattr(self.owner, name, value)

    # ---------- image ----------

    def _load_task_image(self, task: Optional[Task]) -> None:
        self._image_ref = task.base_image if task else None
        self._pil = load_base_image(task.base_image) if task else None
        if self._pil is not None:
            self._iw, self._ih = self._pil.size
        self._render_image()

    def _on_canvas_configure(self, _evt=None):
        # Avoid thrashing when resizing: schedule a single re-render
        if getattr(self, "_render_after_id", None) is not None:
            try:
                self.after_cancel(self._render_after_id)
            except tk.TclError:
                pass
        self._render_after_id = self.after(30, self._render_image)

    def _render_image(self):
        self._render_after_id = None
        self.canvas.delete("all")
        if getattr(self, "_pil", None) is None:
            return
        self.canvas.update_idletasks()
        cw = max(10, self.canvas.winfo_width())
        ch = max(10, self.canvas.winfo_height())

        self._scale = min(cw / self._iw, ch / self._ih)
        self._disp_w = max(1, int(self._iw * self._scale))
        self._disp_h = max(1, int(self._ih * self._scale))
        self._offx = (cw - self._disp_w) // 2
        self._offy = (ch - self._disp_h) // 2

        disp = self._pil.resize((self._disp_w, self._disp_h), Image.BILINEAR)
        self._photo = ImageTk.PhotoImage(disp)
        self.canvas.create_image(self._offx, self._offy, image=self._photo, anchor="nw", tags=("img",))
        self._redraw_overlay()

    # ---------- coordinate transforms ----------

    def _container_rect(self) -> ContainerRect:
        """Image rectangle in screen coordinates, measured fresh on every call."""
        return ContainerRect(
            left=self.canvas.winfo_rootx() + self._offx,
            top=self.canvas.winfo_rooty() + self._offy,
            width=self._disp_w,
            height=self._disp_h,
        )

    def _to_canvas(self, p: Point) -> Tuple[int, int]:
        cx = int(self._offx + p.x / 100.0 * self._disp_w)
        cy = int(self._offy + p.y / 100.0 * self._disp_h)
        return cx, cy

    # ---------- overlay ----------

    def _redraw_overlay(self):
        self.canvas.delete("overlay")
        task = self.store.current_task
        if task is None or getattr(self, "_pil", None) is None:
            return
        editing = self.store.state.is_editing_map

        self._draw_ranges(task)

        if self.controller.active_tool == DRAW_TOOL and task.ranges:
            for p in task.ranges[-1].points:
                cx, cy = self._to_canvas(p)
                self.canvas.create_oval(cx - 4, cy - 4, cx + 4, cy + 4, fill=RANGE_COLOR,
                                        outline="white", width=2, tags=("overlay", "draw_pt"))

        for m in task.markers:
            style = MARKER_STYLES[m.type]
            cx, cy = self._to_canvas(m.point)
            r = MARKER_R if editing else MARKER_R - 3
            active = (m.id == self.controller.dragging_id)
            self.canvas.create_oval(cx - r, cy - r, cx + r, cy + r, fill="white",
                                    outline=("#7AE7FF" if active else style.color), width=3,
                                    tags=("overlay", "marker", f"marker_{m.id}"))
            self.canvas.create_text(cx, cy, text=style.glyph, fill=style.color,
                                    tags=("overlay", "marker", f"marker_{m.id}"))
            if editing:
                dx, dy = cx + DELETE_HANDLE_OFFSET[0], cy + DELETE_HANDLE_OFFSET[1]
                self.canvas.create_oval(dx - DELETE_R, dy - DELETE_R, dx + DELETE_R, dy + DELETE_R,
                                        fill="#0F172A", outline="white", tags=("overlay", "marker_del"))
                self.canvas.create_text(dx, dy, text="✕", fill="white", font=("TkDefaultFont", 7),
                                        tags=("overlay", "marker_del"))

        self._update_area_label(task)
        self._update_tip()

    def _draw_ranges(self, task: Task) -> None:
        if not task.ranges:
            return
        size = (self._disp_w, self._disp_h)
        combined = np.zeros((self._disp_h, self._disp_w), dtype=np.uint8)
        for rng in task.ranges:
            combined |= region_mask(rng.points, size)
        if combined.any():
            overlay = mask_overlay(combined, hex_to_rgb(RANGE_COLOR))
            self._range_photo = ImageTk.PhotoImage(overlay)
            self.canvas.create_image(self._offx, self._offy, image=self._range_photo,
                                     anchor="nw", tags=("overlay", "range_fill"))
        for rng in task.ranges:
            if len(rng.points) < 2:
                continue
            flat = [v for p in rng.points for v in self._to_canvas(p)]
            if len(rng.points) == 2:
                self.canvas.create_line(*flat, fill=RANGE_COLOR, width=3, tags=("overlay", "range"))
            else:
                self.canvas.create_polygon(*flat, fill="", outline=RANGE_COLOR, width=3,
                                           tags=("overlay", "range"))

    def _update_area_label(self, task: Task) -> None:
        total = sum(region_area_pct(r.points) for r in task.ranges)
        n = len(task.ranges)
        self.area_var.set(f"坵塊 {n} 個，約佔影像 {total:.1f}%" if n else "")

    def _update_tip(self):
        if not self.store.state.is_editing_map:
            self.tip_var.set("Map is read-only. Press 修改 to edit markers and plots.")
        elif self.controller.active_tool == DRAW_TOOL:
            self.tip_var.set("Click on the image to add plot vertices; press 完成坵塊 when done.")
        else:
            self.tip_var.set("Pick a marker from the toolkit, then drag it into place. ✕ deletes a marker.")

    # ---------- pointer ----------

    def _on_press(self, event):
        self.canvas.focus_set()
        if getattr(self, "_pil", None) is None:
            return
        if self.store.state.is_editing_map:
            mid = self.controller.hit_test_delete((event.x_root, event.y_root))
            if mid is not None:
                self.controller.on_delete_click(mid)
                return
            mid = self.controller.hit_test_marker((event.x_root, event.y_root), radius=MARKER_HIT_RADIUS)
            if mid is not None:
                self.controller.on_marker_press(mid, event)
                self._redraw_overlay()
                return
        self.controller.on_surface_click(event)
