"""
Configuration Loader (``procure_config.loader``).

Responsibility
--------------
Loads a YAML settings document and parses it into a typed
``MatchingSettings`` instance.  Callers obtain settings through
``procure_config.get_matching_settings()``; this module is the parsing
machinery behind it.

Failure modes
-------------
* Missing YAML file        -> ``ConfigurationError``.
* Malformed YAML           -> ``ConfigurationError`` chained from
  ``yaml.YAMLError``.
* Document not a mapping   -> ``ConfigurationError``.
* Unknown keys             -> ``ConfigurationError``.
* Invalid tolerance value  -> ``ValidationError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from procure_config.schema import MatchingSettings
from procure_kernel.exceptions import ConfigurationError

# Settings may be nested under this key or given at the document root.
SETTINGS_KEY = "matching_settings"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigurationError: if the file is missing, unreadable, not valid
            YAML, or its top level is not a mapping.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as exc:
        raise ConfigurationError(str(path), "file not found") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(str(path), f"invalid YAML: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top level must be a mapping")
    return data


def parse_matching_settings(
    data: dict[str, Any],
    source: str | None = None,
) -> MatchingSettings:
    """
    Parse ``MatchingSettings`` from a loaded document.

    Missing keys take their schema defaults; an empty document yields the
    installation defaults.
    """
    section = data[SETTINGS_KEY] if SETTINGS_KEY in data else data
    if section is None:
        section = {}
    if not isinstance(section, dict):
        raise ConfigurationError(source, f"'{SETTINGS_KEY}' must be a mapping")
    return MatchingSettings.from_dict(dict(section), source=source)


def compute_checksum(settings: MatchingSettings) -> str:
    """
    Deterministic SHA-256 checksum of a settings instance.

    Decimals are normalized so ``2`` and ``2.00`` hash identically.
    """
    canonical: dict[str, Any] = {}
    for key, value in sorted(settings.to_dict().items()):
        if isinstance(value, bool):
            canonical[key] = value
        else:
            canonical[key] = str(value.normalize())
    payload = json.dumps(canonical, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
