from __future__ import annotations

import logging
import tkinter as tk
import traceback
from tkinter import ttk, filedialog, messagebox
from typing import Optional

from .analysis import ImageAnalyzer
from .batch import BatchFormatError, parse_task_lines
from .controller import MapController, PaletteTool
from .data_model import InspectionData, ProjectState, Task, TaskStatus
from .project_io import (
    PROJECT_SUFFIX, ProjectFormatError, export_filename, export_project, import_project, save_autosave,
)
from .regions import RegionDrawer
from .settings import SurveySettings
from .task import ProjectStore, mark_completed, mark_editing
from .ui_panel_canvas import MapActor, MapPanel
from .ui_panel_form import FormPanel
from .ui_panel_setup import SetupPanel
from .ui_panel_tasks import TaskListPanel
from .ui_panel_toolbar import ToolbarPanel

logger = logging.getLogger(__name__)

AUTOSAVE_DELAY_MS = 400


class SurveyWindow(tk.Tk):
    def __init__(self, *, store: ProjectStore, settings: SurveySettings,
                 analyzer: Optional[ImageAnalyzer] = None):
        super().__init__()
        self.title("Farmland Survey")
        self.geometry("1280x820")
        self.resizable(True, True)

        self.store = store
        self.settings = settings
        self.analyzer = analyzer

        self._pil = None
        self._image_ref: Optional[str] = None
        self._shown_task_id: Optional[str] = None
        self._shown_form: Optional[InspectionData] = None
        self._autosave_after_id = None
        self._render_after_id = None
        self._view_shown: Optional[str] = None
        self._offx = self._offy = 0
        self._disp_w = self._disp_h = 1

        self.map_actor = MapActor(self)
        self.controller = MapController(
            get_task=lambda: self.store.current_task,
            update=self.store.update_current,
            get_rect=self.map_actor._container_rect,
            capture_source=self,
            is_editing=lambda: self.store.state.is_editing_map,
            drawer=RegionDrawer(drop_degenerate=settings.drop_degenerate_ranges),
            on_changed=lambda: self.map_actor._redraw_overlay(),
        )

        self._build_ui()
        self.store.subscribe(self._on_state_change)
        self.protocol("WM_DELETE_WINDOW", self._on_close)
        self._show_view()

    # ---------- UI ----------
    def _build_ui(self):
        root = ttk.Frame(self, padding=8)
        root.pack(fill="both", expand=True)

        self.task_list_panel = TaskListPanel(
            self,
            root,
            on_open=self._open_task,
            on_import=self._import_project,
            on_setup=lambda: self.store.set_view("setup"),
        )
        self.setup_panel = SetupPanel(
            self,
            root,
            on_back=lambda: self.store.set_view("list"),
            on_batch_import=self._batch_import,
            on_export=self._export_project,
            on_reset=self._reset_tasks,
        )

        editor = ttk.Frame(root)
        self.editor_frame = editor
        top = ttk.Frame(editor)
        top.pack(side="top", fill="x")
        ttk.Button(top, text="←", width=3, command=self._back_to_list).pack(side="left")
        self.editor_title = tk.StringVar(value="")
        ttk.Label(top, textvariable=self.editor_title, font=("TkDefaultFont", 12, "bold")).pack(side="left", padx=(8, 0))
        self.edit_toggle_btn = ttk.Button(top, text="完成編輯", command=self._toggle_map_edit)
        self.edit_toggle_btn.pack(side="right")

        panes = ttk.Panedwindow(editor, orient="horizontal")
        panes.pack(fill="both", expand=True, pady=(8, 0))
        left = ttk.Frame(panes)
        right = ttk.Frame(panes, width=380)
        panes.add(left, weight=3)
        panes.add(right, weight=1)

        self.toolbar_panel = ToolbarPanel(
            self,
            left,
            on_tool=self._on_tool,
            on_finish_draw=self._on_finish_draw,
        )
        self.map_panel = MapPanel(self, left, actor=self.map_actor)
        self.form_panel = FormPanel(self, right, on_save=self._save_result)

    def _show_view(self):
        st = self.store.state
        view = st.view if (st.view != "editor" or self.store.current_task is not None) else "list"
        for frm in (self.task_list_panel.frame, self.setup_panel.frame, self.editor_frame):
            frm.pack_forget()
        if view == "list":
            self.task_list_panel.frame.pack(fill="both", expand=True)
            self.task_list_panel.refresh()
        elif view == "setup":
            self.setup_panel.frame.pack(fill="both", expand=True)
            self.setup_panel.refresh()
        else:
            self.editor_frame.pack(fill="both", expand=True)
            self._refresh_editor()
        self._view_shown = view

    def _refresh_editor(self):
        task = self.store.current_task
        if task is None:
            return
        editing = self.store.state.is_editing_map
        self.editor_title.set(f"{task.code} - {task.owner}")
        self.edit_toggle_btn.configure(text="完成編輯" if editing else "修改")
        self.toolbar_panel.sync(editing=editing, drawing=self.controller.drawer.is_drawing)
        switched = task.id != self._shown_task_id
        if switched or task.base_image != self._image_ref:
            self._shown_task_id = task.id
            self.map_actor._load_task_image(task)
        else:
            self.map_actor._redraw_overlay()
        if switched or task.form_data is not self._shown_form:
            self._shown_form = task.form_data
            self.form_panel.sync(task)

    # ---------- store ----------
    def _on_state_change(self, state: ProjectState) -> None:
        self._schedule_autosave()
        view = state.view
        if view != self._view_shown or view != "editor":
            self._show_view()
        else:
            self._refresh_editor()

    def _schedule_autosave(self):
        if self._autosave_after_id is not None:
            try:
                self.after_cancel(self._autosave_after_id)
            except tk.TclError:
                pass
        self._autosave_after_id = self.after(AUTOSAVE_DELAY_MS, self._flush_autosave)

    def _flush_autosave(self):
        self._autosave_after_id = None
        try:
            save_autosave(self.store.state, self.settings.autosave_path)
        except OSError:
            logger.exception("Autosave to %s failed", self.settings.autosave_path)

    def _on_close(self):
        self.controller.reset()
        if self._autosave_after_id is not None:
            self.after_cancel(self._autosave_after_id)
            self._flush_autosave()
        self.destroy()

    # ---------- navigation ----------
    def _open_task(self, task_id: str):
        self.controller.reset()
        self._shown_task_id = None
        self.store.select_task(task_id)

    def _back_to_list(self):
        self.controller.reset()
        self.store.set_view("list")

    def _toggle_map_edit(self):
        task = self.store.current_task
        editing = self.store.toggle_map_edit()
        self.controller.on_edit_mode_changed(editing)
        if editing and task is not None and task.status == TaskStatus.COMPLETED:
            self.store.update_current(mark_editing())
        self._refresh_editor()

    # ---------- map tools ----------
    def _on_tool(self, tool: PaletteTool):
        self.controller.select_tool(tool)
        self._refresh_editor()

    def _on_finish_draw(self):
        self.controller.finish_draw()
        self._refresh_editor()

    # ---------- form ----------
    def _save_result(self):
        task: Optional[Task] = self.store.current_task
        if task is None:
            return
        self.form_panel._commit_other()
        self.controller.reset()
        self.store.update_current(mark_completed())
        self._show_info("儲存現勘結果", "儲存成功！請記得回到列表匯出專案檔。")
        self.store.set_view("list")

    # ---------- project file ----------
    def _import_project(self):
        path = filedialog.askopenfilename(
            parent=self,
            title="載入專案檔",
            filetypes=[("Farmland project", f"*{PROJECT_SUFFIX}"), ("All files", "*.*")],
        )
        if not path:
            return
        try:
            state = import_project(path)
        except ProjectFormatError as e:
            logger.warning("Import of %s failed: %s", path, e)
            self._show_error("匯入失敗", f"匯入失敗，請確認檔案格式是否正確。\n\n{e}")
            return
        self.controller.reset()
        self._shown_task_id = None
        self.store.replace_state(state)
        self._show_info("載入專案", "專案載入成功！")

    def _export_project(self):
        path = filedialog.asksaveasfilename(
            parent=self,
            title="匯出專案分享檔",
            defaultextension=PROJECT_SUFFIX,
            initialfile=export_filename(self.store.state.project_name),
            filetypes=[("Farmland project", f"*{PROJECT_SUFFIX}"), ("All files", "*.*")],
        )
        if not path:
            return
        try:
            export_project(self.store.state, path)
        except OSError as e:
            traceback.print_exc()
            self._show_error("匯出失敗", str(e))

    def _batch_import(self, text: str):
        try:
            tasks = parse_task_lines(text, year=self.settings.default_year)
        except BatchFormatError as e:
            self._show_error("匯入格式錯誤", f"請確保為：編號,業主,網址\n\n{e}")
            return
        if not tasks:
            self._show_info("批次匯入", "沒有可匯入的資料。")
            return
        self.store.add_tasks(tasks)
        self.setup_panel.clear_batch()
        self._show_info("批次匯入", f"已匯入 {len(tasks)} 筆現勘對象")

    def _reset_tasks(self):
        if messagebox.askyesno("重置", "確定要清空目前所有任務嗎？", parent=self):
            self.controller.reset()
            self.store.clear_tasks()

    def _show_info(self, title: str, message: str) -> None:
        messagebox.showinfo(title, message, parent=self)

    def _show_error(self, title: str, message: str) -> None:
        messagebox.showerror(title, message, parent=self)
