"""Attribute configuration files.

An attribute config file declares the full similarity profile layout::

    {
      "attributes": [
        {"name": "firstname", "group": "personal", "max_similarity": 4,
         "comparator": "firstname"},
        ...
      ]
    }

``comparator`` names an entry of ``COMPARATORS``; ``min_similarity`` is
optional and defaults to 0.
"""

import json
from pathlib import Path
from typing import Any

import jsonschema

from simratio.attributes.comparators import COMPARATORS
from simratio.attributes.registry import AttributeRegistry, AttributeSpec
from simratio.errors import ErrorKind, RatiosError
from simratio.utils import read_text_utf8

__all__ = ["ATTRIBUTE_CONFIG_SCHEMA", "build_registry", "load_attribute_config"]

ATTRIBUTE_CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["attributes"],
    "additionalProperties": False,
    "properties": {
        "attributes": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["name", "group", "max_similarity", "comparator"],
                "additionalProperties": False,
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "group": {"type": "string", "minLength": 1},
                    "min_similarity": {"type": "integer", "minimum": 0},
                    "max_similarity": {"type": "integer", "minimum": 0},
                    "comparator": {"type": "string", "minLength": 1},
                },
            },
        },
    },
}


def build_registry(config: dict[str, Any]) -> AttributeRegistry:
    """Build a registry from a parsed attribute config.

    Parameters
    ----------
    config : dict[str, Any]
        Parsed config document.

    Returns
    -------
    AttributeRegistry
        Registry in declared attribute order.

    Raises
    ------
    jsonschema.ValidationError
        If the document does not match ``ATTRIBUTE_CONFIG_SCHEMA``.
    RatiosError
        MALFORMED_CONFIGURATION for an unknown comparator or invalid bounds.
    """
    jsonschema.validate(instance=config, schema=ATTRIBUTE_CONFIG_SCHEMA)

    specs: list[AttributeSpec] = []
    for entry in config["attributes"]:
        comparator = COMPARATORS.get(entry["comparator"])
        if comparator is None:
            raise RatiosError(
                ErrorKind.MALFORMED_CONFIGURATION,
                f"Attribute {entry['name']}: unknown comparator '{entry['comparator']}'",
            )
        try:
            specs.append(
                AttributeSpec(
                    name=entry["name"],
                    group=entry["group"],
                    max_similarity=entry["max_similarity"],
                    min_similarity=entry.get("min_similarity", 0),
                    comparator=comparator,
                )
            )
        except ValueError as e:
            raise RatiosError(ErrorKind.MALFORMED_CONFIGURATION, str(e)) from e

    try:
        return AttributeRegistry(specs)
    except ValueError as e:
        raise RatiosError(ErrorKind.MALFORMED_CONFIGURATION, str(e)) from e


def load_attribute_config(config_path: Path | str) -> AttributeRegistry:
    """Load an attribute registry from a JSON file.

    Raises
    ------
    RatiosError
        IO_FAILURE if the file is missing, not UTF-8 or not valid JSON.
    """
    path = Path(config_path)
    text = read_text_utf8(path, "attribute config")
    try:
        config = json.loads(text)
    except json.JSONDecodeError as e:
        raise RatiosError(ErrorKind.IO_FAILURE, f"Malformed attribute config {path}: {e}") from e

    return build_registry(config)
