from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

from .data_model import DEFAULT_PROJECT_NAME, DEFAULT_YEAR

logger = logging.getLogger(__name__)

CONFIG_ENV = "FARMLAND_SURVEY_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".farmland_survey_config.json"
DEFAULT_AUTOSAVE_PATH = Path.home() / ".farmland_survey_state.json"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class SurveySettings:
    project_name: str = DEFAULT_PROJECT_NAME
    default_year: str = DEFAULT_YEAR
    autosave_path: str = str(DEFAULT_AUTOSAVE_PATH)
    # Remove 0-2 point ranges when a draw is finished.
    drop_degenerate_ranges: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            self.log_level = "INFO"
        self.drop_degenerate_ranges = bool(self.drop_degenerate_ranges)


def config_path() -> Path:
    env = os.environ.get(CONFIG_ENV, "").strip()
    return Path(env) if env else DEFAULT_CONFIG_PATH


def load_config(path: Optional[Path] = None) -> SurveySettings:
    path = path or config_path()
    if not path.exists():
        return SurveySettings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("config root must be an object")
        known = {f.name for f in fields(SurveySettings)}
        merged = {**asdict(SurveySettings()), **{k: v for k, v in data.items() if k in known}}
        return SurveySettings(**merged)
    except Exception:
        # A corrupt config must not block the app.
        logger.warning("Ignoring unreadable config %s", path, exc_info=True)
        return SurveySettings()


def save_config(settings: SurveySettings, path: Optional[Path] = None) -> None:
    path = path or config_path()
    path.write_text(json.dumps(asdict(settings), indent=2, ensure_ascii=False), encoding="utf-8")
