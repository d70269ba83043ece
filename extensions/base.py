"""
ParaCore - Extension/Tool Contract
==================================

Eine Extension besteht aus Manifest (reine Metadaten), optionalem Tool und
optionalem on_register()-Hook.

Ein Tool deklariert UI-Properties (vom Host für Eingabefelder genutzt) und
eine create(code_manager, params)-Funktion. Der Host ruft create() einmal pro
Tool-Aktivierung mit aufgelösten Parametern auf:
- fehlende Keys bekommen den Default
- unbekannte Keys werden ignoriert
- Werte werden auf den deklarierten Typ gebracht

create() darf den CodeManager nicht über den Aufruf hinaus behalten.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from parametric.code_manager import CodeManager
    from parametric.features.base import FeatureRef


class ExtensionError(Exception):
    """Basisklasse für Extension-Fehler."""

    error_code = "extension_error"


class ExtensionRegistrationError(ExtensionError):
    """Manifest/Tool unvollständig oder Extension-ID doppelt."""

    error_code = "extension_registration"

    def __init__(self, extension_id: str, message: str):
        self.extension_id = extension_id
        super().__init__(f"Extension '{extension_id}': {message}")


class ParameterError(ExtensionError, ValueError):
    """Tool-Parameter hat falschen Typ oder verletzt Grenzen."""

    error_code = "parameter_invalid"

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Parameter '{key}': {message}")


class ExtensionCategory(Enum):
    PRIMITIVE = "primitive"
    MODIFIER = "modifier"
    UTILITY = "utility"


class PropertyType(Enum):
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"


_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


@dataclass(frozen=True)
class UiProperty:
    """
    Parameter-Deskriptor eines Tools.

    Der Default muss zum Typ passen; min/max gelten nur für NUMBER.
    """
    key: str
    label: str
    type: PropertyType
    default: Any
    unit: Optional[str] = None
    min: Optional[float] = None
    max: Optional[float] = None

    def __post_init__(self):
        if not self.key:
            raise ValueError("UiProperty.key must not be empty")
        if not isinstance(self.type, PropertyType):
            raise ValueError(f"UiProperty '{self.key}': unknown type {self.type!r}")
        # Default muss selbst gültig sein
        self.coerce(self.default)

    def coerce(self, value: Any) -> Any:
        """Bringt value auf den deklarierten Typ oder wirft ParameterError."""
        if self.type is PropertyType.NUMBER:
            return self._coerce_number(value)
        if self.type is PropertyType.BOOLEAN:
            return self._coerce_bool(value)
        if not isinstance(value, str):
            raise ParameterError(self.key, f"expected string, got {type(value).__name__}")
        return value

    def _coerce_number(self, value: Any):
        if isinstance(value, bool):
            raise ParameterError(self.key, "expected number, got bool")
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                raise ParameterError(self.key, f"'{value}' is not a number") from None
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ParameterError(self.key, f"expected finite number, got {value!r}")
        if self.min is not None and value < self.min:
            raise ParameterError(self.key, f"{value} is below minimum {self.min}")
        if self.max is not None and value > self.max:
            raise ParameterError(self.key, f"{value} is above maximum {self.max}")
        return value

    def _coerce_bool(self, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        raise ParameterError(self.key, f"expected boolean, got {value!r}")


@dataclass(frozen=True)
class ToolMetadata:
    """Präsentationsdaten, vom Kern nicht ausgewertet."""
    id: str
    label: str
    icon: str = ""
    category: ExtensionCategory = ExtensionCategory.PRIMITIVE


CreateFn = Callable[["CodeManager", Dict[str, Any]], Optional["FeatureRef"]]


@dataclass
class Tool:
    metadata: ToolMetadata
    create: CreateFn
    ui_properties: Tuple[UiProperty, ...] = field(default_factory=tuple)

    def __post_init__(self):
        self.ui_properties = tuple(self.ui_properties)

    def resolve_params(self, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        Typisierte Parameter für create().

        Defaults für fehlende Keys, unbekannte Keys werden ignoriert.

        Raises:
            ParameterError: Wert passt nicht zum deklarierten Typ
        """
        params = params or {}
        resolved = {}
        for prop in self.ui_properties:
            if prop.key in params:
                resolved[prop.key] = prop.coerce(params[prop.key])
            else:
                resolved[prop.key] = prop.default

        ignored = set(params) - set(resolved)
        if ignored:
            logger.debug(f"Tool '{self.metadata.id}': ignoriere unbekannte Parameter {sorted(ignored)}")
        return resolved

    def activate(self, code_manager: "CodeManager",
                 params: Optional[Mapping[str, Any]] = None) -> Optional["FeatureRef"]:
        """Löst Parameter auf und ruft create() genau einmal auf."""
        resolved = self.resolve_params(params)
        logger.debug(f"Tool '{self.metadata.id}' aktiviert mit {resolved}")
        return self.create(code_manager, resolved)


@dataclass(frozen=True)
class ExtensionManifest:
    id: str
    name: str
    version: str
    description: str = ""
    author: str = ""
    icon: str = ""
    category: ExtensionCategory = ExtensionCategory.MODIFIER


@dataclass
class Extension:
    manifest: ExtensionManifest
    tool: Optional[Tool] = None
    on_register: Optional[Callable[[], None]] = None

    @property
    def id(self) -> str:
        return self.manifest.id
