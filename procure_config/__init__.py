"""
procure_config -- public entrypoint for matching configuration.

Responsibility:
    Provides ``get_matching_settings()``, which loads a YAML settings file
    (the packaged defaults unless a path is given) and returns a frozen
    ``MatchingSettings``.  Settings are then passed explicitly to every
    evaluation; no component reads them from ambient state.

Failure modes:
    - ``ConfigurationError`` -- missing or malformed settings file.
    - ``ValidationError`` -- a tolerance that is negative, non-finite, or a
      non-positive total tolerance.

Audit relevance:
    Every successful load emits a ``PROCURE_CONFIG_TRACE`` log entry with
    the source path and a checksum, tying each batch of match results to
    the exact tolerances that produced it.
"""

from __future__ import annotations

from pathlib import Path

from procure_config.loader import compute_checksum, load_yaml_file, parse_matching_settings
from procure_config.schema import MatchingSettings
from procure_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults" / "matching_settings.yaml"


def get_matching_settings(path: Path | str | None = None) -> MatchingSettings:
    """Load matching settings from ``path`` or the packaged defaults."""
    source = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    settings = parse_matching_settings(load_yaml_file(source), source=str(source))

    _logger.info(
        "PROCURE_CONFIG_TRACE",
        extra={
            "trace_type": "PROCURE_CONFIG_TRACE",
            "source": str(source),
            "checksum": compute_checksum(settings),
            "total_tolerance_percentage": str(settings.total_tolerance_percentage),
        },
    )
    return settings


__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "MatchingSettings",
    "compute_checksum",
    "get_matching_settings",
    "load_yaml_file",
    "parse_matching_settings",
]
