"""Define typed configuration models for the mip viewer.

Use `ViewerConfig` to load, validate, and persist runtime settings.
"""

import dataclasses
import logging
import os
import threading
from dataclasses import dataclass, field
from typing import List

import yaml

logger = logging.getLogger("mip_viewer.config")

_SUPPORTED_CONFIG_VERSION = 1

UNAVAILABLE_POLICIES = ("placeholder", "skip", "fail")


@dataclass
class DecodeConfig:
    """Store settings for block decoding."""

    # Route BC6/BC7 to native compressed upload instead of failing.
    allow_native_upload: bool = True
    # Decoded results kept in the content-keyed LRU (0 disables caching).
    cache_entries: int = 64


@dataclass
class LayoutConfig:
    """Store settings for the staircase atlas layout."""

    # Widen the canvas to the summed mip widths when the chain is not halving.
    sum_actual_widths: bool = False
    warn_non_halving: bool = True


@dataclass
class DescriptionConfig:
    """Store settings applied when a description is loaded."""

    require_halving_chain: bool = False


@dataclass
class PreviewConfig:
    """Store settings for the software atlas preview."""

    on_unavailable: str = "placeholder"  # "placeholder" | "skip" | "fail"
    background: List[int] = field(default_factory=lambda: [0, 0, 0, 0])
    placeholder_color: List[int] = field(default_factory=lambda: [255, 0, 255, 255])
    checker_size: int = 8


@dataclass
class ViewerConfig:
    """Master viewer configuration."""

    config_version: int = 1
    store_dir: str = "."
    output_path: str = "atlas.png"
    log_level: str = "INFO"
    log_file: str = ""
    max_workers: int = 1
    show_progress: bool = True

    decode: DecodeConfig = field(default_factory=DecodeConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    description: DescriptionConfig = field(default_factory=DescriptionConfig)
    preview: PreviewConfig = field(default_factory=PreviewConfig)

    @classmethod
    def from_yaml(cls, path: str) -> "ViewerConfig":
        """Load viewer configuration from YAML or return defaults."""
        if not os.path.exists(path):
            logger.info("Config file '%s' not found. Using defaults.", path)
            config = cls()
            config.validate()
            return config
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Failed to parse YAML config '{path}': {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError(
                f"Config file '{path}' must contain a YAML mapping, "
                f"got {type(data).__name__}"
            )
        yaml_version = data.get("config_version", 1)
        if isinstance(yaml_version, int) and yaml_version > _SUPPORTED_CONFIG_VERSION:
            logger.warning(
                "Config file '%s' has config_version=%d, but this build only "
                "supports up to version %d. Some settings may be ignored.",
                path, yaml_version, _SUPPORTED_CONFIG_VERSION,
            )
        config = cls()
        _merge_dict_to_dataclass(config, data)
        try:
            config.validate()
        except ValueError as exc:
            raise ValueError(f"{path}: {exc}") from exc
        return config

    def to_yaml(self, path: str):
        """Write viewer configuration to a YAML file."""
        data = dataclasses.asdict(self)
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        ext = os.path.splitext(path)[1]
        tmp_path = f"{path}.tmp.{os.getpid()}.{threading.get_ident()}{ext}"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                yaml.dump(data, f, default_flow_style=False, sort_keys=False)
            os.replace(tmp_path, path)
        finally:
            if os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass

    def validate(self):
        """Raise ValueError describing every invalid setting."""
        errors = []
        if self.max_workers < 1:
            errors.append(f"max_workers must be >= 1, got {self.max_workers}")
        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if str(self.log_level).upper() not in valid_log_levels:
            errors.append(
                f"log_level must be one of {sorted(valid_log_levels)}, "
                f"got '{self.log_level}'"
            )
        if self.decode.cache_entries < 0:
            errors.append(
                f"decode.cache_entries must be >= 0, got {self.decode.cache_entries}"
            )
        if self.preview.on_unavailable not in UNAVAILABLE_POLICIES:
            errors.append(
                f"preview.on_unavailable must be one of {list(UNAVAILABLE_POLICIES)}, "
                f"got '{self.preview.on_unavailable}'"
            )
        if self.preview.checker_size < 1:
            errors.append(
                f"preview.checker_size must be >= 1, got {self.preview.checker_size}"
            )
        for name in ("background", "placeholder_color"):
            color = getattr(self.preview, name)
            if (
                not isinstance(color, list)
                or len(color) != 4
                or not all(isinstance(c, int) and 0 <= c <= 255 for c in color)
            ):
                errors.append(f"preview.{name} must be 4 integers in [0, 255], got {color!r}")
        if errors:
            raise ValueError("Invalid configuration:\n  " + "\n  ".join(errors))


def _merge_dict_to_dataclass(obj, data: dict, _path: str = ""):
    for key, value in data.items():
        full_key = f"{_path}{key}"
        if not hasattr(obj, key):
            logger.warning("Unknown config key ignored: '%s'", full_key)
            continue
        field_val = getattr(obj, key)
        if dataclasses.is_dataclass(field_val) and isinstance(value, dict):
            _merge_dict_to_dataclass(field_val, value, f"{full_key}.")
            continue
        if value is None and field_val is not None:
            logger.warning(
                "Config key '%s' is null but field default is %s. Using default value.",
                full_key, type(field_val).__name__,
            )
            continue
        expected_type = type(field_val)
        # Allow int->float and exact float->int promotion.
        if (not isinstance(value, expected_type)
                and not (expected_type is float and isinstance(value, int))
                and not (expected_type is int
                         and isinstance(value, float)
                         and value == int(value))):
            logger.warning(
                "Config type mismatch for '%s': expected %s, got %s (%r). "
                "Using default value.",
                full_key, expected_type.__name__, type(value).__name__, value,
            )
            continue
        if expected_type is int and isinstance(value, float):
            value = int(value)
        setattr(obj, key, value)
