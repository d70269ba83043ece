"""
ParaCore - Geometrie-Ergebnisse und Operations-Evaluatoren
==========================================================

Kein echter CAD-Kernel: ein GeometryResult beschreibt den Zustand nach einem
Feature (Solids, Bounding-Box, Volumen). Jeder Operationsname ist über
register_operation() an einen Evaluator gebunden:

    evaluator(parent_result, arguments) -> GeometryResult

parent_result ist None wenn das Feature keinen Parent hat (Basis-Zustand).
Ungültige Argumente werfen ValueError; der CodeManager verpackt das in
einen OperationError mit Feature-ID und Operationsname.

Primitive mit Parent werden auf die Oberseite des Parents gestellt
(zentriert in X/Y), das Ergebnis enthält die Solids beider.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from config.tolerances import Tolerances
from parametric.errors import UnknownOperationError


@dataclass(frozen=True, eq=False)
class Solid:
    """Ein einzelner primitiver Körper mit achsparalleler Bounding-Box."""
    kind: str
    parameters: Dict[str, float]
    bbox_min: np.ndarray
    bbox_max: np.ndarray
    volume: float

    @property
    def dimensions(self) -> np.ndarray:
        return self.bbox_max - self.bbox_min

    def translated(self, offset: np.ndarray) -> "Solid":
        return Solid(self.kind, dict(self.parameters), self.bbox_min + offset,
                     self.bbox_max + offset, self.volume)

    def scaled(self, factor: float, origin: np.ndarray) -> "Solid":
        params = {k: v * factor for k, v in self.parameters.items()}
        return Solid(
            self.kind,
            params,
            origin + (self.bbox_min - origin) * factor,
            origin + (self.bbox_max - origin) * factor,
            self.volume * factor ** 3,
        )


@dataclass(frozen=True, eq=False)
class GeometryResult:
    """
    Geometrischer Zustand nach einem Feature.

    Attributes:
        kind: Art des zuletzt erzeugten Körpers ("box", "cylinder", ...)
            oder der Operation ("translate", "scale")
        solids: Alle Körper des Zustands, ältester zuerst
        feature_id: Feature das diesen Zustand erzeugt hat
    """
    kind: str
    solids: Tuple[Solid, ...] = field(default_factory=tuple)
    feature_id: Optional[str] = None

    @property
    def bbox_min(self) -> np.ndarray:
        return np.min([s.bbox_min for s in self.solids], axis=0)

    @property
    def bbox_max(self) -> np.ndarray:
        return np.max([s.bbox_max for s in self.solids], axis=0)

    @property
    def dimensions(self) -> np.ndarray:
        return self.bbox_max - self.bbox_min

    @property
    def center(self) -> np.ndarray:
        return (self.bbox_min + self.bbox_max) / 2.0

    @property
    def volume(self) -> float:
        return float(sum(s.volume for s in self.solids))

    @property
    def is_box(self) -> bool:
        return self.kind == "box"

    def with_feature(self, feature_id: str) -> "GeometryResult":
        return GeometryResult(self.kind, self.solids, feature_id)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-taugliche Zusammenfassung (für Reports und CLI)."""
        return {
            "feature_id": self.feature_id,
            "kind": self.kind,
            "solids": len(self.solids),
            "bbox_min": [round(float(v), 6) for v in self.bbox_min],
            "bbox_max": [round(float(v), 6) for v in self.bbox_max],
            "volume": round(self.volume, 6),
        }

    def __repr__(self) -> str:
        dims = "x".join(f"{float(v):g}" for v in self.dimensions)
        return f"GeometryResult({self.kind}, solids={len(self.solids)}, dims={dims}, volume={self.volume:g})"


Evaluator = Callable[[Optional[GeometryResult], Tuple[Any, ...]], GeometryResult]

_OPERATIONS: Dict[str, Evaluator] = {}


def register_operation(name: str) -> Callable[[Evaluator], Evaluator]:
    """Decorator: bindet einen Evaluator an einen Operationsnamen."""
    def decorator(func: Evaluator) -> Evaluator:
        if name in _OPERATIONS and _OPERATIONS[name] is not func:
            logger.warning(f"Evaluator für '{name}' wird überschrieben")
        _OPERATIONS[name] = func
        return func
    return decorator


def unregister_operation(name: str) -> None:
    _OPERATIONS.pop(name, None)


def get_evaluator(name: str) -> Evaluator:
    try:
        return _OPERATIONS[name]
    except KeyError:
        raise UnknownOperationError(name) from None


def available_operations() -> Tuple[str, ...]:
    return tuple(sorted(_OPERATIONS))


def evaluate(operation_name: str, parent: Optional[GeometryResult],
             arguments: Sequence[Any]) -> GeometryResult:
    """Wertet eine Operation aus (ohne Caching)."""
    return get_evaluator(operation_name)(parent, tuple(arguments))


# --- Argument-Validierung ---

def _expect_count(operation: str, args: Tuple[Any, ...], count: int):
    if len(args) != count:
        raise ValueError(f"{operation} expects {count} argument(s), got {len(args)}")


def _dimension(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    value = float(value)
    if not math.isfinite(value) or value < Tolerances.MIN_DIMENSION:
        raise ValueError(f"{name} must be positive, got {value:g}")
    return value


def _number(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"{name} must be finite, got {value}")
    return value


def _require_parent(operation: str, parent: Optional[GeometryResult]) -> GeometryResult:
    if parent is None or not parent.solids:
        raise ValueError(f"{operation} requires a parent feature with geometry")
    return parent


def _place_primitive(kind: str, solid: Solid, parent: Optional[GeometryResult]) -> GeometryResult:
    """Ohne Parent: Körper im Ursprung. Mit Parent: auf dessen Oberseite zentriert."""
    if parent is None:
        return GeometryResult(kind, (solid,))

    center = parent.center
    half = solid.dimensions / 2.0
    target_min = np.array([center[0] - half[0], center[1] - half[1], parent.bbox_max[2]])
    placed = solid.translated(target_min - solid.bbox_min)
    return GeometryResult(kind, parent.solids + (placed,))


# --- Primitive ---

@register_operation("makeBaseBox")
def make_base_box(parent: Optional[GeometryResult], args: Tuple[Any, ...]) -> GeometryResult:
    """Quader [length, width, height] mit Ecke im Ursprung."""
    _expect_count("makeBaseBox", args, 3)
    length = _dimension("length", args[0])
    width = _dimension("width", args[1])
    height = _dimension("height", args[2])

    solid = Solid(
        kind="box",
        parameters={"length": length, "width": width, "height": height},
        bbox_min=np.zeros(3),
        bbox_max=np.array([length, width, height]),
        volume=length * width * height,
    )
    return _place_primitive("box", solid, parent)


@register_operation("makeCylinder")
def make_cylinder(parent: Optional[GeometryResult], args: Tuple[Any, ...]) -> GeometryResult:
    """Zylinder [radius, height], Achse +Z durch den Ursprung."""
    _expect_count("makeCylinder", args, 2)
    radius = _dimension("radius", args[0])
    height = _dimension("height", args[1])

    solid = Solid(
        kind="cylinder",
        parameters={"radius": radius, "height": height},
        bbox_min=np.array([-radius, -radius, 0.0]),
        bbox_max=np.array([radius, radius, height]),
        volume=math.pi * radius ** 2 * height,
    )
    return _place_primitive("cylinder", solid, parent)


@register_operation("makeSphere")
def make_sphere(parent: Optional[GeometryResult], args: Tuple[Any, ...]) -> GeometryResult:
    """Kugel [radius] um den Ursprung."""
    _expect_count("makeSphere", args, 1)
    radius = _dimension("radius", args[0])

    solid = Solid(
        kind="sphere",
        parameters={"radius": radius},
        bbox_min=np.full(3, -radius),
        bbox_max=np.full(3, radius),
        volume=4.0 / 3.0 * math.pi * radius ** 3,
    )
    return _place_primitive("sphere", solid, parent)


# --- Modifikatoren ---

@register_operation("translate")
def translate(parent: Optional[GeometryResult], args: Tuple[Any, ...]) -> GeometryResult:
    """Verschiebt alle Körper des Parents um [dx, dy, dz]."""
    parent = _require_parent("translate", parent)
    _expect_count("translate", args, 3)
    offset = np.array([_number(axis, v) for axis, v in zip("xyz", args)])
    return GeometryResult("translate", tuple(s.translated(offset) for s in parent.solids))


@register_operation("scale")
def scale(parent: Optional[GeometryResult], args: Tuple[Any, ...]) -> GeometryResult:
    """Skaliert alle Körper des Parents uniform um [factor] relativ zur bbox_min."""
    parent = _require_parent("scale", parent)
    _expect_count("scale", args, 1)
    factor = _number("factor", args[0])
    if factor < Tolerances.MIN_SCALE_FACTOR:
        raise ValueError(f"factor must be positive, got {factor:g}")
    origin = parent.bbox_min
    return GeometryResult("scale", tuple(s.scaled(factor, origin) for s in parent.solids))
