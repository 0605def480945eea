"""Unit tests for svg_visual_bbox.config.

Tests cover defaults, YAML loading (explicit path, $SBB_CONFIG, working
directory), SBB_* environment overrides, validation errors and conversion
to measurement and overlay options.
"""

import os
from pathlib import Path

import pytest

from svg_visual_bbox.config import Config
from svg_visual_bbox.exceptions import ConfigError
from svg_visual_bbox.measure import ClipMode, CorrectionPolicy
from svg_visual_bbox.overlay import Theme


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate tests from the caller's SBB_* variables and working directory."""
    for name in list(os.environ):
        if name.startswith("SBB_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


class TestDefaults:
    """Tests for built-in defaults."""

    def test_load_without_sources(self) -> None:
        config = Config.load()
        assert config == Config()
        assert config.font_timeout_ms == 8000
        assert config.mode is ClipMode.CLIPPED
        assert config.theme is Theme.AUTO
        assert config.correction == CorrectionPolicy()

    def test_measure_options(self) -> None:
        options = Config(coarse_factor=2, safety_margin=5, mode=ClipMode.UNCLIPPED).measure_options()
        assert options.coarse_factor == 2
        assert options.safety_margin == 5
        assert options.mode is ClipMode.UNCLIPPED

    def test_overlay_options(self) -> None:
        config = Config(padding_px=6, theme=Theme.DARK)
        options = config.overlay_options()
        assert options.padding == 6
        assert options.theme is Theme.DARK
        overridden = config.overlay_options(theme="light", border_color=None)
        assert overridden.theme is Theme.LIGHT
        assert overridden.border_color is None

    def test_enum_values_pass_through(self) -> None:
        config = Config.from_dict({"theme": Theme.LIGHT, "mode": ClipMode.UNCLIPPED})
        assert config.theme is Theme.LIGHT
        assert config.mode is ClipMode.UNCLIPPED
        assert config.overlay_options().theme is Theme.LIGHT
        assert config.overlay_options(theme=Theme.DARK).theme is Theme.DARK


class TestYamlLoading:
    """Tests for reading svg-bbox.yaml files."""

    def test_explicit_path(self, tmp_path: Path) -> None:
        path = tmp_path / "custom.yaml"
        path.write_text(
            "font_timeout_ms: 5000\n"
            "padding_px: 6\n"
            "theme: dark\n"
            "mode: unclipped\n"
            "browser_args: [--no-sandbox]\n"
            "correction:\n"
            "  text_tags: [text]\n"
            "  check_stroke: false\n"
        )
        config = Config.load(path)
        assert config.font_timeout_ms == 5000
        assert config.padding_px == 6
        assert config.theme is Theme.DARK
        assert config.mode is ClipMode.UNCLIPPED
        assert config.browser_args == ["--no-sandbox"]
        assert config.correction.text_tags == frozenset({"text"})
        assert config.correction.check_stroke is False

    def test_working_directory_file(self, tmp_path: Path) -> None:
        (tmp_path / "svg-bbox.yaml").write_text("padding_px: 1\n")
        assert Config.load().padding_px == 1

    def test_env_var_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "elsewhere.yaml"
        path.write_text("log_level: debug\n")
        monkeypatch.setenv("SBB_CONFIG", str(path))
        assert Config.load().log_level == "DEBUG"

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert Config.load(path) == Config()

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            Config.load(tmp_path / "nope.yaml")

    def test_missing_env_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SBB_CONFIG", str(tmp_path / "nope.yaml"))
        with pytest.raises(ConfigError, match="SBB_CONFIG"):
            Config.load()

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError, match="mapping"):
            Config.load(path)

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("padding_px: [1\n")
        with pytest.raises(ConfigError, match="Cannot read"):
            Config.load(path)


class TestValidation:
    """Tests for from_dict() validation."""

    def test_unknown_key(self) -> None:
        with pytest.raises(ConfigError, match="Unknown config keys: colour"):
            Config.from_dict({"colour": "red"})

    @pytest.mark.parametrize(
        "data",
        [
            {"padding_px": "wide"},
            {"mode": "sideways"},
            {"theme": "sepia"},
            {"headless": "maybe"},
            {"browser_args": "--no-sandbox"},
            {"correction": ["text"]},
            {"correction": {"unknown": True}},
        ],
    )
    def test_invalid_value(self, data: dict) -> None:
        with pytest.raises(ConfigError):
            Config.from_dict(data)

    @pytest.mark.parametrize(
        "data",
        [
            {"padding_px": -1},
            {"fine_factor": 0},
            {"safety_margin": -2},
            {"max_raster_side": 8},
            {"log_level": "LOUD"},
        ],
    )
    def test_out_of_range(self, data: dict) -> None:
        with pytest.raises(ConfigError, match="must be"):
            Config.from_dict(data)


class TestEnvOverrides:
    """Tests for SBB_* environment variables."""

    def test_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("padding_px: 6\n")
        monkeypatch.setenv("SBB_PADDING_PX", "9")
        monkeypatch.setenv("SBB_HEADLESS", "false")
        monkeypatch.setenv("SBB_BROWSER_ARGS", "--no-sandbox --disable-gpu")
        config = Config.load(path)
        assert config.padding_px == 9
        assert config.headless is False
        assert config.browser_args == ["--no-sandbox", "--disable-gpu"]

    @pytest.mark.parametrize("raw,expected", [("auto", None), ("none", None), ("12.5", 12.5)])
    def test_safety_margin(self, raw: str, expected, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SBB_SAFETY_MARGIN", raw)
        assert Config.load().safety_margin == expected

    def test_invalid_env_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SBB_MAX_RASTER_SIDE", "huge")
        with pytest.raises(ConfigError, match="max_raster_side"):
            Config.load()

    def test_no_overrides_returns_same(self) -> None:
        config = Config()
        assert config.with_env_overrides({}) is config
