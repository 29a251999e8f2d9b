"""Configuration loading utilities for tomoseq runs."""

from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Any

from tomoseq.core.types import PeakConfig, TomoConfig
from tomoseq.errors import InvalidParameterError

RUN_SECTIONS: tuple[str, ...] = ("tomo", "peaks")


def load_json_config(path: str | Path) -> dict[str, Any]:
    """Read a run config file into a dict of sections.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        InvalidParameterError: For a non-``.json`` file, malformed JSON
            (line and column are reported) or a root that is not an object.
    """
    config_path = Path(path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    if config_path.suffix.lower() != ".json":
        raise InvalidParameterError(
            f"'{config_path.name}' is not a .json file. Use a .json config file.",
            stage="config",
        )

    text = config_path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidParameterError(
            f"'{config_path.name}' is not valid JSON at line {exc.lineno}, "
            f"column {exc.colno}: {exc.msg}",
            stage="config",
        ) from exc

    if not isinstance(data, dict):
        raise InvalidParameterError(
            f"'{config_path.name}' must hold a JSON object with {RUN_SECTIONS} "
            f"sections (expected JSON object, got {type(data).__name__}).",
            stage="config",
        )
    return data


def _build(cls, payload: dict[str, Any], section: str):
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise InvalidParameterError(
            f"Unknown key(s) in '{section}' config: {', '.join(unknown)}."
        )
    return cls(**payload).validate()


def peak_config_from_dict(payload: dict[str, Any]) -> PeakConfig:
    return _build(PeakConfig, payload, "peaks")


def tomo_config_from_dict(payload: dict[str, Any]) -> TomoConfig:
    return _build(TomoConfig, payload, "tomo")


def check_matrix_available(tomo: TomoConfig, peaks: PeakConfig) -> None:
    """Fail early when ``peaks.matrix`` names a layer ``tomo`` will not build."""
    missing = (peaks.matrix == "scaled" and not tomo.scale) or (
        peaks.matrix == "normalized" and not tomo.normalize
    )
    if missing:
        raise InvalidParameterError(
            f"matrix '{peaks.matrix}' is not built with normalize={tomo.normalize}, "
            f"scale={tomo.scale}.",
            stage="container",
        )


def load_run_config(path: str | Path) -> tuple[TomoConfig, PeakConfig]:
    """Load ``{"tomo": {...}, "peaks": {...}}``; missing sections use defaults."""
    data = load_json_config(path)
    unknown = sorted(set(data) - set(RUN_SECTIONS))
    if unknown:
        raise InvalidParameterError(
            f"Unknown top-level config section(s): {', '.join(unknown)}."
        )
    tomo = tomo_config_from_dict(dict(data.get("tomo", {})))
    peaks = peak_config_from_dict(dict(data.get("peaks", {})))
    check_matrix_available(tomo, peaks)
    return tomo, peaks
