"""Load SessionOptions from YAML profiles and bundled presets."""

from __future__ import annotations

import dataclasses
import enum
import importlib.resources
from pathlib import Path
from typing import Any

import yaml

from mirrorctl.session.models import SessionOptions

_PRESET_KEY = "preset"

_FIELDS = {f.name: f for f in dataclasses.fields(SessionOptions)}
_DEFAULTS = SessionOptions()


def load_options(
    path: str | Path, base: SessionOptions | None = None
) -> SessionOptions:
    """Load an option profile from a YAML file path."""
    text = Path(path).read_text(encoding="utf-8")
    return load_options_from_string(text, base=base)


def load_options_from_string(
    text: str, base: SessionOptions | None = None
) -> SessionOptions:
    """Parse a YAML profile into SessionOptions.

    Presets named under ``preset:`` are applied first, in order, then the
    explicit fields on top.
    """
    data = yaml.safe_load(text)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Options YAML must be a mapping")
    return _build_options(data, base if base is not None else SessionOptions())


def list_presets() -> list[str]:
    """Names of the presets bundled with the package."""
    pkg = importlib.resources.files("mirrorctl.session.presets")
    return sorted(
        entry.name[: -len(".yaml")]
        for entry in pkg.iterdir()
        if entry.name.endswith(".yaml")
    )


def load_preset(name: str) -> dict[str, Any]:
    """Return the raw field overrides of a bundled preset."""
    pkg = importlib.resources.files("mirrorctl.session.presets")
    resource = pkg.joinpath(f"{name}.yaml")
    if not resource.is_file():
        raise ValueError(f"Unknown preset: {name}")
    data = yaml.safe_load(resource.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Preset {name} must be a mapping")
    return data


def apply_preset(name: str, options: SessionOptions) -> SessionOptions:
    """Overlay a preset onto options. Unknown presets return options unchanged."""
    try:
        overrides = load_preset(name)
    except ValueError:
        return options
    return _apply_fields(options, overrides)


def _build_options(data: dict, base: SessionOptions) -> SessionOptions:
    presets = data.get(_PRESET_KEY, [])
    if isinstance(presets, str):
        presets = [presets]

    options = base
    for name in presets:
        options = _apply_fields(options, load_preset(name))

    fields = {k: v for k, v in data.items() if k != _PRESET_KEY}
    return _apply_fields(options, fields)


def _apply_fields(options: SessionOptions, fields: dict[str, Any]) -> SessionOptions:
    changes: dict[str, Any] = {}
    for key, raw in fields.items():
        name = str(key).replace("-", "_")
        if name not in _FIELDS:
            raise ValueError(f"Unknown session option: {key}")
        changes[name] = _coerce(name, raw)
    return dataclasses.replace(options, **changes)


def _coerce(name: str, raw: Any) -> Any:
    default = getattr(_DEFAULTS, name)
    if isinstance(default, enum.Enum):
        try:
            return type(default)(str(raw).lower())
        except ValueError:
            allowed = ", ".join(m.value for m in type(default))
            raise ValueError(
                f"Invalid value for {name}: {raw!r} (expected one of {allowed})"
            ) from None
    if isinstance(default, bool):
        if not isinstance(raw, bool):
            raise ValueError(f"Invalid value for {name}: {raw!r} (expected boolean)")
        return raw
    if isinstance(default, int):
        if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
            raise ValueError(
                f"Invalid value for {name}: {raw!r} (expected positive integer)"
            )
        return raw
    return raw
