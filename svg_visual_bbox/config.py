"""Configuration for svg-visual-bbox.

Settings come from, in increasing precedence:

1. built-in defaults
2. a YAML file: the explicit path, else ``$SBB_CONFIG``, else ``./svg-bbox.yaml``
3. ``SBB_*`` environment variables (``SBB_FONT_TIMEOUT_MS=0`` ...)

Example ``svg-bbox.yaml``::

    font_timeout_ms: 5000
    padding_px: 6
    theme: dark
    mode: unclipped
    correction:
      text_tags: [text, tspan, textPath]
      check_stroke: true
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from svg_visual_bbox.exceptions import ConfigError
from svg_visual_bbox.fonts import DEFAULT_FONT_TIMEOUT_MS
from svg_visual_bbox.measure import ClipMode, CorrectionPolicy, MeasureOptions
from svg_visual_bbox.overlay import OverlayOptions, Theme

CONFIG_ENV_VAR = "SBB_CONFIG"
ENV_PREFIX = "SBB_"
DEFAULT_CONFIG_NAME = "svg-bbox.yaml"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    """Runtime settings shared by the API facade and the CLI."""

    font_timeout_ms: float = DEFAULT_FONT_TIMEOUT_MS
    padding_px: float = 4.0
    coarse_factor: float = 3.0
    fine_factor: float = 24.0
    safety_margin: float | None = None
    use_layout_scale: bool = True
    max_raster_side: int = 4096
    mode: ClipMode = ClipMode.CLIPPED
    theme: Theme = Theme.AUTO
    headless: bool = True
    browser_args: list[str] = field(default_factory=list)
    log_level: str = "WARNING"
    correction: CorrectionPolicy = field(default_factory=CorrectionPolicy)

    @classmethod
    def load(cls, path: Path | str | None = None) -> Config:
        """Load configuration from YAML and the environment.

        Args:
            path: Explicit YAML file. Must exist when given.

        Returns:
            A validated Config.

        Raises:
            ConfigError: The file is unreadable or a value is invalid.
        """
        data: dict[str, Any] = {}
        source = _find_config_file(path)
        if source is not None:
            data = _read_yaml(source)
        config = cls.from_dict(data)
        return config.with_env_overrides(os.environ)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Build a Config from a plain mapping (YAML document)."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(
                f"Unknown config keys: {', '.join(sorted(unknown))}",
                {"allowed": ", ".join(sorted(known))},
            )
        config = cls()
        for key, raw in data.items():
            setattr(config, key, _coerce(key, raw))
        config.validate()
        return config

    def with_env_overrides(self, environ: Any) -> Config:
        """Copy with ``SBB_<FIELD>`` environment variables applied."""
        updates: dict[str, Any] = {}
        for f in fields(self):
            if f.name == "correction":
                continue
            env_name = ENV_PREFIX + f.name.upper()
            if env_name in environ:
                updates[f.name] = _coerce(f.name, _env_value(f.name, environ[env_name]))
        if not updates:
            return self
        config = replace(self, **updates)
        config.validate()
        return config

    def validate(self) -> None:
        """Raise ConfigError on out-of-range values."""
        if self.padding_px < 0:
            raise ConfigError("padding_px: must be >= 0", {"value": self.padding_px})
        if self.coarse_factor <= 0 or self.fine_factor <= 0:
            raise ConfigError(
                "coarse_factor/fine_factor: must be > 0",
                {"coarse_factor": self.coarse_factor, "fine_factor": self.fine_factor},
            )
        if self.safety_margin is not None and self.safety_margin < 0:
            raise ConfigError("safety_margin: must be >= 0", {"value": self.safety_margin})
        if self.max_raster_side < 16:
            raise ConfigError("max_raster_side: must be >= 16", {"value": self.max_raster_side})
        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(
                f"log_level: must be one of {', '.join(_LOG_LEVELS)}",
                {"value": self.log_level},
            )

    def measure_options(self) -> MeasureOptions:
        return MeasureOptions(
            mode=self.mode,
            coarse_factor=self.coarse_factor,
            fine_factor=self.fine_factor,
            safety_margin=self.safety_margin,
            use_layout_scale=self.use_layout_scale,
            max_raster_side=self.max_raster_side,
            policy=self.correction,
        )

    def overlay_options(self, **overrides: Any) -> OverlayOptions:
        values: dict[str, Any] = {"theme": self.theme, "padding": self.padding_px}
        values.update({k: v for k, v in overrides.items() if v is not None})
        if "theme" in values:
            values["theme"] = _coerce("theme", values["theme"])
        return OverlayOptions(**values)


def _find_config_file(path: Path | str | None) -> Path | None:
    if path is not None:
        explicit = Path(path)
        if not explicit.is_file():
            raise ConfigError(f"Config file not found: {explicit}")
        return explicit
    from_env = os.environ.get(CONFIG_ENV_VAR)
    if from_env:
        env_path = Path(from_env)
        if not env_path.is_file():
            raise ConfigError(f"{CONFIG_ENV_VAR} points to a missing file: {env_path}")
        return env_path
    local = Path.cwd() / DEFAULT_CONFIG_NAME
    return local if local.is_file() else None


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping", {"type": type(data).__name__})
    return data


def _env_value(name: str, raw: str) -> Any:
    if name == "browser_args":
        return raw.split()
    if name == "safety_margin" and raw.strip().lower() in ("", "none", "auto"):
        return None
    return raw


def _coerce(name: str, raw: Any) -> Any:
    """Convert a YAML or environment value to the field's type."""
    try:
        if name in ("font_timeout_ms", "padding_px", "coarse_factor", "fine_factor"):
            return float(raw)
        if name == "safety_margin":
            return None if raw is None else float(raw)
        if name == "max_raster_side":
            return int(raw)
        if name in ("use_layout_scale", "headless"):
            return _to_bool(raw)
        if name == "mode":
            return raw if isinstance(raw, ClipMode) else ClipMode(str(raw).lower())
        if name == "theme":
            return raw if isinstance(raw, Theme) else Theme(str(raw).lower())
        if name == "log_level":
            return str(raw).upper()
        if name == "browser_args":
            if not isinstance(raw, list):
                raise TypeError("expected a list")
            return [str(a) for a in raw]
        if name == "correction":
            if isinstance(raw, CorrectionPolicy):
                return raw
            if not isinstance(raw, dict):
                raise TypeError("expected a mapping")
            return CorrectionPolicy.from_mapping(raw)
    except ConfigError:
        raise
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name}: invalid value {raw!r} ({e})") from e
    return raw


def _to_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise ValueError("expected a boolean")
