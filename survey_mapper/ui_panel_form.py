from __future__ import annotations

import tkinter as tk
from tkinter import ttk, filedialog
from typing import Callable, Dict, List

from PIL import ImageTk

from .analysis import analyze_crop_image
from .cv_utils import file_to_data_uri, optional_image, thumbnail
from .data_model import IRRIGATION_OPTIONS, LAND_STATUS_OPTIONS, LAND_STATUS_OTHER, Task
from .task import add_photos, set_other_status, toggle_irrigation, toggle_land_status

PHOTO_SECTIONS = (("irrigation", "用水型態"), ("land", "農地現況"), ("surrounding", "周圍現況"))
THUMB = 64


class FormPanel:
    def __init__(
        self,
        owner,
        parent: tk.Widget,
        *,
        on_save: Callable[[], None],
    ) -> None:
        self.owner = owner
        frame = ttk.Frame(parent, padding=8)
        self.frame = frame
        frame.pack(side="top", fill="both", expand=True)

        form = ttk.LabelFrame(frame, text="現勘調查表", padding=8)
        form.pack(side="top", fill="x")

        ttk.Label(form, text="1. 農地使用灌溉方式 (複選)").pack(side="top", anchor="w")
        self.irrigation_vars: Dict[str, tk.BooleanVar] = {}
        for opt in IRRIGATION_OPTIONS:
            var = tk.BooleanVar(value=False)
            ttk.Checkbutton(form, text=opt, variable=var,
                            command=lambda o=opt: self._patch(toggle_irrigation, o)).pack(side="top", anchor="w")
            self.irrigation_vars[opt] = var

        ttk.Label(form, text="2. 農地使用狀態 (複選)").pack(side="top", anchor="w", pady=(8, 0))
        self.land_vars: Dict[str, tk.BooleanVar] = {}
        for opt in LAND_STATUS_OPTIONS:
            var = tk.BooleanVar(value=False)
            ttk.Checkbutton(form, text=opt, variable=var,
                            command=lambda o=opt: self._patch(toggle_land_status, o)).pack(side="top", anchor="w")
            self.land_vars[opt] = var
        self.other_var = tk.StringVar(value="")
        self.other_entry = ttk.Entry(form, textvariable=self.other_var)
        self.other_entry.bind("<FocusOut>", lambda _e: self._commit_other())
        self.other_entry.bind("<Return>", lambda _e: self._commit_other())

        photos = ttk.LabelFrame(frame, text="現勘照片", padding=8)
        photos.pack(side="top", fill="x", pady=(8, 0))
        self.photo_rows: Dict[str, ttk.Frame] = {}
        self._thumbs: List[ImageTk.PhotoImage] = []
        for key, title in PHOTO_SECTIONS:
            hdr = ttk.Frame(photos)
            hdr.pack(side="top", fill="x", pady=(6, 0))
            ttk.Label(hdr, text=title).pack(side="left")
            ttk.Button(hdr, text="+", width=3, command=lambda k=key: self._add_photos(k)).pack(side="right")
            row = ttk.Frame(photos)
            row.pack(side="top", fill="x")
            self.photo_rows[key] = row

        advice = ttk.LabelFrame(frame, text="作物建議", padding=8)
        advice.pack(side="top", fill="both", expand=True, pady=(8, 0))
        bar = ttk.Frame(advice)
        bar.pack(side="top", fill="x")
        self.crop_var = tk.StringVar(value="")
        ttk.Label(bar, text="作物:").pack(side="left")
        ttk.Entry(bar, textvariable=self.crop_var, width=12).pack(side="left", padx=(6, 0))
        ttk.Button(bar, text="分析農地照片", command=self._analyze).pack(side="right")
        self.advice_text = tk.Text(advice, height=5, wrap="word")
        self.advice_text.pack(side="top", fill="both", expand=True, pady=(6, 0))

        ttk.Button(frame, text="儲存現勘結果", command=on_save).pack(side="bottom", fill="x", pady=(8, 0))

    # ---------- task -> widgets ----------

    def sync(self, task: Task) -> None:
        fd = task.form_data
        for opt, var in self.irrigation_vars.items():
            var.set(opt in fd.irrigation_methods)
        for opt, var in self.land_vars.items():
            var.set(opt in fd.land_status)
        if LAND_STATUS_OTHER in fd.land_status:
            if not self.other_entry.winfo_ismapped():
                self.other_entry.pack(side="top", fill="x", pady=(4, 0))
            if self.owner.focus_get() is not self.other_entry:
                self.other_var.set(fd.other_status or "")
        else:
            self.other_entry.pack_forget()
        self._render_photos(task)

    def _render_photos(self, task: Task) -> None:
        self._thumbs = []
        for key, row in self.photo_rows.items():
            for w in row.winfo_children():
                w.destroy()
            uris = getattr(task.form_data.photos, key)
            for uri in uris:
                img = optional_image(uri)
                if img is None:
                    ttk.Label(row, text="?").pack(side="left", padx=2)
                    continue
                photo = ImageTk.PhotoImage(thumbnail(img, THUMB))
                self._thumbs.append(photo)
                tk.Label(row, image=photo).pack(side="left", padx=2)
            if not uris:
                ttk.Label(row, text="(none)", foreground="#94A3B8").pack(side="left")

    # ---------- widgets -> task ----------

    def _patch(self, make_patch, *args) -> None:
        task = self.owner.store.current_task
        if task is None:
            return
        self.owner.store.update_current(make_patch(task, *args))

    def _commit_other(self) -> None:
        task = self.owner.store.current_task
        if task is None or (task.form_data.other_status or "") == self.other_var.get():
            return
        self._patch(set_other_status, self.other_var.get())

    def _add_photos(self, category: str) -> None:
        paths = filedialog.askopenfilenames(
            parent=self.owner,
            title="Attach photos",
            filetypes=[("Images", "*.png *.jpg *.jpeg *.gif *.bmp *.webp"), ("All files", "*.*")],
        )
        if not paths:
            return
        try:
            uris = [file_to_data_uri(p) for p in paths]
        except OSError as e:
            self.owner._show_error("Attach photos", str(e))
            return
        self._patch(add_photos, category, uris)

    def _analyze(self) -> None:
        task = self.owner.store.current_task
        if task is None:
            return
        photos = task.form_data.photos.land
        if not photos:
            self.owner._show_info("作物建議", "請先上傳農地現況照片。")
            return
        text = analyze_crop_image(self.owner.analyzer, photos[-1], self.crop_var.get())
        self.advice_text.delete("1.0", "end")
        self.advice_text.insert("end", text)
