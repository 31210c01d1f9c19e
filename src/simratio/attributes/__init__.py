"""Attribute dimensions of the similarity profile.

This package provides the attribute registry (profile layout, groups and
similarity bounds), the default inventor comparators and the JSON
attribute config loader.
"""

from simratio.attributes.comparators import COMPARATORS, DEFAULT_ATTRIBUTES, DEFAULT_REGISTRY
from simratio.attributes.config import (
    ATTRIBUTE_CONFIG_SCHEMA,
    build_registry,
    load_attribute_config,
)
from simratio.attributes.registry import AttributeRegistry, AttributeSpec, Comparator

__all__ = [
    "AttributeSpec",
    "AttributeRegistry",
    "Comparator",
    "COMPARATORS",
    "DEFAULT_ATTRIBUTES",
    "DEFAULT_REGISTRY",
    "ATTRIBUTE_CONFIG_SCHEMA",
    "build_registry",
    "load_attribute_config",
]
