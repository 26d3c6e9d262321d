import logging
import traceback

from tkinter import messagebox

from survey_mapper.data_model import ProjectState
from survey_mapper.project_io import load_autosave
from survey_mapper.settings import config_path, load_config
from survey_mapper.task import ProjectStore
from survey_mapper.ui_window import SurveyWindow

logger = logging.getLogger("surveyor")


def main():
    settings = load_config()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Using config %s", config_path())

    state = load_autosave(settings.autosave_path)
    if state is None:
        state = ProjectState(project_name=settings.project_name)
    store = ProjectStore(state)

    try:
        app = SurveyWindow(store=store, settings=settings)
    except Exception as e:
        traceback.print_exc()
        messagebox.showerror("Farmland Survey", f"Failed to start:\n{e}")
        raise SystemExit(1)
    app.mainloop()


if __name__ == "__main__":
    main()
