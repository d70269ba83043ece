"""ParaCore extensions: Tool/Extension contract and registry."""

from .base import (
    Extension,
    ExtensionCategory,
    ExtensionError,
    ExtensionManifest,
    ExtensionRegistrationError,
    ParameterError,
    PropertyType,
    Tool,
    ToolMetadata,
    UiProperty,
)
from .registry import ExtensionRegistry

__all__ = [
    "Extension",
    "ExtensionCategory",
    "ExtensionError",
    "ExtensionManifest",
    "ExtensionRegistrationError",
    "ParameterError",
    "PropertyType",
    "Tool",
    "ToolMetadata",
    "UiProperty",
    "ExtensionRegistry",
]
