import json

from survey_mapper.data_model import DEFAULT_PROJECT_NAME
from survey_mapper.settings import CONFIG_ENV, SurveySettings, config_path, load_config, save_config


def test_missing_config_gives_defaults(tmp_path):
    s = load_config(tmp_path / "none.json")
    assert s == SurveySettings()
    assert s.project_name == DEFAULT_PROJECT_NAME
    assert s.drop_degenerate_ranges is False


def test_save_then_load(tmp_path):
    path = tmp_path / "cfg.json"
    save_config(SurveySettings(project_name="測試", drop_degenerate_ranges=True, log_level="debug"), path)
    s = load_config(path)
    assert s.project_name == "測試"
    assert s.drop_degenerate_ranges is True
    assert s.log_level == "DEBUG"


def test_corrupt_config_falls_back(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text("{oops", encoding="utf-8")
    assert load_config(path) == SurveySettings()
    path.write_text("[1, 2]", encoding="utf-8")
    assert load_config(path) == SurveySettings()


def test_unknown_keys_and_bad_level_ignored(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"default_year": "116", "theme": "dark", "log_level": "loud"}), encoding="utf-8")
    s = load_config(path)
    assert s.default_year == "116"
    assert s.log_level == "INFO"


def test_env_overrides_config_path(tmp_path, monkeypatch):
    path = tmp_path / "env.json"
    monkeypatch.setenv(CONFIG_ENV, str(path))
    assert config_path() == path
    save_config(SurveySettings(default_year="117"))
    assert load_config().default_year == "117"
