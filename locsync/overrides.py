"""Ignore list and per-locale forced translations, loaded once per run."""
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional

import jsonschema

from locsync.errors import ConfigError

logger = logging.getLogger(__name__)

# "ignore" lists baseline values that are never translated;
# "custom" maps locale -> baseline value -> forced translation.
OVERRIDE_CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "ignore": {
            "type": "array",
            "items": {"type": "string"}
        },
        "custom": {
            "type": "object",
            "patternProperties": {
                "^.*$": {
                    "type": "object",
                    "patternProperties": {
                        "^.*$": {"type": "string"}
                    },
                    "additionalProperties": False
                }
            },
            "additionalProperties": False
        }
    }
}


@dataclass(frozen=True)
class OverrideConfiguration:
    """Immutable override data shared by every reconciliation pass of a run."""
    ignore_set: FrozenSet[str] = frozenset()
    custom_overrides: Mapping[str, Mapping[str, str]] = field(default_factory=dict)

    def is_ignored(self, baseline_value: str) -> bool:
        return baseline_value in self.ignore_set

    def override_for(self, locale: str, baseline_value: str) -> Optional[str]:
        """Return the forced value for ``baseline_value`` in ``locale``, if one is configured."""
        return self.custom_overrides.get(locale, {}).get(baseline_value)


def parse_override_config(data: Dict[str, Any], source: str = "<memory>") -> OverrideConfiguration:
    """
    Validate a decoded override document and build the configuration from it.

    Args:
        data: The decoded JSON document.
        source: Where the document came from, used in error messages.

    Returns:
        OverrideConfiguration: The validated configuration.
    """
    try:
        jsonschema.validate(instance=data, schema=OVERRIDE_CONFIG_SCHEMA)
    except jsonschema.ValidationError as schema_exc:
        raise ConfigError(f"Override configuration '{source}' is invalid: {schema_exc.message}") from schema_exc

    custom = {
        locale: dict(values)
        for locale, values in data.get('custom', {}).items()
    }
    return OverrideConfiguration(
        ignore_set=frozenset(data.get('ignore', [])),
        custom_overrides=custom
    )


def load_override_config(config_path: str) -> OverrideConfiguration:
    """
    Load the override configuration JSON file.

    Raises:
        ConfigError: If the file is missing, unreadable, not JSON, or fails schema validation.
    """
    if not os.path.exists(config_path):
        raise ConfigError(f"Override configuration file '{config_path}' not found.")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as json_exc:
        raise ConfigError(f"Error decoding override configuration '{config_path}': {json_exc}") from json_exc
    except (OSError, UnicodeDecodeError) as read_exc:
        raise ConfigError(f"Could not read override configuration '{config_path}': {read_exc}") from read_exc

    overrides = parse_override_config(data, config_path)
    logger.info(
        "Loaded override configuration from '%s': %d ignored value(s), custom overrides for %d locale(s).",
        config_path,
        len(overrides.ignore_set),
        len(overrides.custom_overrides)
    )
    return overrides
