"""Tests for recount.config and recount.config_loader."""

from pathlib import Path

import pytest

from recount._errors import ConfigError
from recount.config import DEFAULT_MAX_EVENTS, DEFAULT_MAX_LISTENERS, RecountConfig
from recount.config_loader import ENV_MAX_EVENTS, load_config


class TestRecountConfig:
    """RecountConfig — frozen dataclass with sensible defaults."""

    def test_defaults(self) -> None:
        config = RecountConfig()
        assert config.max_events == DEFAULT_MAX_EVENTS == 10_000
        assert config.max_listeners == DEFAULT_MAX_LISTENERS == 100
        assert config.collect_metrics is True
        assert config.stabilization_debounce_ms == 50.0

    def test_frozen(self) -> None:
        config = RecountConfig()
        with pytest.raises(AttributeError):
            config.max_events = 5  # type: ignore[misc]

    @pytest.mark.parametrize("value", [0, -1, 1.5, True, "10"])
    def test_rejects_bad_max_events(self, value: object) -> None:
        with pytest.raises(ConfigError, match="max_events"):
            RecountConfig(max_events=value)  # type: ignore[arg-type]

    def test_rejects_bad_max_listeners(self) -> None:
        with pytest.raises(ConfigError, match="max_listeners"):
            RecountConfig(max_listeners=0)

    def test_rejects_non_bool_metrics_flag(self) -> None:
        with pytest.raises(ConfigError, match="collect_metrics"):
            RecountConfig(collect_metrics=1)  # type: ignore[arg-type]

    def test_rejects_non_positive_debounce(self) -> None:
        with pytest.raises(ConfigError, match="stabilization_debounce_ms"):
            RecountConfig(stabilization_debounce_ms=0)


class TestLoadConfig:
    """load_config — file lookup, then environment, then keyword overrides."""

    @pytest.fixture(autouse=True)
    def _no_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(ENV_MAX_EVENTS, raising=False)

    def test_no_file_gives_defaults(self, tmp_path: Path) -> None:
        assert load_config(tmp_path) == RecountConfig()

    def test_yaml_file(self, tmp_path: Path) -> None:
        (tmp_path / "recount.yaml").write_text("max_events: 500\ncollect_metrics: false\n")
        config = load_config(tmp_path)
        assert config.max_events == 500
        assert config.collect_metrics is False

    def test_yaml_recount_section(self, tmp_path: Path) -> None:
        (tmp_path / "recount.yml").write_text("recount:\n  max_listeners: 7\n")
        assert load_config(tmp_path).max_listeners == 7

    def test_toml_file(self, tmp_path: Path) -> None:
        (tmp_path / "recount.toml").write_text("max_events = 42\n")
        assert load_config(tmp_path).max_events == 42

    def test_pyproject_tool_table(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text(
            '[project]\nname = "x"\n\n[tool.recount]\nstabilization_debounce_ms = 20\n'
        )
        assert load_config(tmp_path).stabilization_debounce_ms == 20

    def test_pyproject_without_table_is_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "x"\n')
        assert load_config(tmp_path) == RecountConfig()

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "recount.toml").write_text("max_events = 42\n")
        monkeypatch.setenv(ENV_MAX_EVENTS, "1000000")
        assert load_config(tmp_path).max_events == 1_000_000

    def test_kwargs_override_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_MAX_EVENTS, "1000000")
        assert load_config(tmp_path, max_events=3).max_events == 3

    def test_bad_env_value(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_MAX_EVENTS, "lots")
        with pytest.raises(ConfigError, match=ENV_MAX_EVENTS):
            load_config(tmp_path)

    def test_unknown_key_rejected(self, tmp_path: Path) -> None:
        (tmp_path / "recount.yaml").write_text("max_event: 5\n")
        with pytest.raises(ConfigError, match="max_event"):
            load_config(tmp_path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        (tmp_path / "recount.yaml").write_text("max_events: [unclosed\n")
        with pytest.raises(ConfigError, match="invalid YAML"):
            load_config(tmp_path)

    def test_yaml_must_be_mapping(self, tmp_path: Path) -> None:
        (tmp_path / "recount.yaml").write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(tmp_path)

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "recount.toml").write_text("max_events = \n")
        with pytest.raises(ConfigError, match="invalid TOML"):
            load_config(tmp_path)

    def test_invalid_value_from_file(self, tmp_path: Path) -> None:
        (tmp_path / "recount.toml").write_text("max_events = 0\n")
        with pytest.raises(ConfigError, match="max_events"):
            load_config(tmp_path)
