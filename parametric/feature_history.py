"""
ParaCore - Feature History
==========================

Geordnetes, append-only Log von Features mit stabilen IDs.

Die History ist die Arena: Features referenzieren ihren Parent nur über die
ID (FeatureRef), nie über ein Objekt. Einfüge-Reihenfolge == Abhängigkeits-
Reihenfolge, weil ein Feature nur einen bereits existierenden Vorgänger als
Parent bekommen kann. Damit reicht für alle Abhängigkeitsfragen ein
Vorwärts-Scan über die Liste.

Usage:
    history = FeatureHistory()
    box = history.append("makeBaseBox", None, [10, 10, 10])
    top = history.append("makeBaseBox", box.ref(history.history_id), [5, 5, 5])

    history.remove(box.id)                # -> DependentFeatureError
    history.remove(box.id, cascade=True)  # -> RemovalResult (top, box)
"""

import dataclasses
import uuid
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Set

from loguru import logger

from config.feature_flags import is_enabled
from parametric.errors import DependentFeatureError, InvalidParentError, NotFoundError
from parametric.features.base import Feature, FeatureRef, RefLike, iter_refs, ref_id
from parametric.result_types import RemovalResult

_PRIMITIVE_TYPES = (int, float, str, bool, type(None))


def _new_id() -> str:
    return uuid.uuid4().hex[:8]


class FeatureHistory:
    """
    Autoritatives Log der Features eines Dokuments.

    Kernkonzepte:
    1. Referentielle Integrität: Parent muss existieren und aus dieser History stammen
    2. IDs werden nie wiederverwendet, auch nicht nach remove/truncate
    3. Strukturelle Fehler lassen die History unverändert
    """

    def __init__(self, history_id: Optional[str] = None):
        self.history_id: str = history_id or _new_id()

        self._features: List[Feature] = []

        # Feature ID -> Position (wird bei strukturellen Änderungen neu aufgebaut)
        self._index: Dict[str, int] = {}

        # Alle jemals vergebenen IDs
        self._issued_ids: Set[str] = set()

        logger.debug(f"FeatureHistory '{self.history_id}' initialisiert")

    # --- Abfragen ---

    def __len__(self) -> int:
        return len(self._features)

    def __contains__(self, ref: RefLike) -> bool:
        if isinstance(ref, FeatureRef) and ref.history_id != self.history_id:
            return False
        return ref_id(ref) in self._index

    def __iter__(self) -> Iterator[Feature]:
        return self.iterate()

    def iterate(self) -> Iterator[Feature]:
        """
        Lazy Traversierung in Einfüge-Reihenfolge.

        Jeder Aufruf startet von vorn. Iteriert über einen Snapshot, damit
        strukturelle Änderungen während der Iteration nichts durcheinanderbringen.
        """
        snapshot = list(self._features)
        for feature in snapshot:
            yield feature

    @property
    def head(self) -> Optional[Feature]:
        """Letztes Feature oder None bei leerer History."""
        return self._features[-1] if self._features else None

    @property
    def issued_ids(self) -> Set[str]:
        return set(self._issued_ids)

    def get(self, ref: RefLike) -> Feature:
        feature_id = self._resolve_id(ref)
        return self._features[self._index[feature_id]]

    def index_of(self, ref: RefLike) -> int:
        return self._index[self._resolve_id(ref)]

    def ref(self, ref: RefLike) -> FeatureRef:
        """FeatureRef für eine existierende ID."""
        return FeatureRef(self.history_id, self._resolve_id(ref))

    def ancestors_of(self, ref: RefLike) -> List[Feature]:
        """Parent-Kette, nächster Vorfahre zuerst."""
        feature = self.get(ref)
        ancestors = []
        while feature.parent is not None:
            feature = self._features[self._index[feature.parent_id]]
            ancestors.append(feature)
        return ancestors

    def dependents_of(self, ref: RefLike) -> List[Feature]:
        """
        Alle transitiv abhängigen Features in Log-Reihenfolge.

        Abhängig ist, wer das Feature als Parent hat oder per FeatureRef in
        den Argumenten referenziert. Ein Vorwärts-Scan ab dem Feature genügt,
        da Referenzen immer auf frühere Features zeigen.
        """
        feature_id = self._resolve_id(ref)
        start = self._index[feature_id]
        chain = {feature_id}
        dependents = []
        for feature in self._features[start + 1:]:
            if not chain.isdisjoint(feature.dependency_ids()):
                chain.add(feature.id)
                dependents.append(feature)
        return dependents

    # --- Mutationen ---

    def append(self, operation_name: str, parent: Optional[RefLike] = None,
               arguments: Sequence[Any] = ()) -> Feature:
        """
        Hängt ein neues Feature an.

        Args:
            operation_name: Operations-Tag, z.B. "makeBaseBox"
            parent: FeatureRef/ID eines existierenden Features oder None
            arguments: Geordnete Argumente (Primitive oder FeatureRefs)

        Raises:
            InvalidParentError: Parent unbekannt oder aus anderer History
            ValueError/TypeError: Operationsname oder Argumente ungültig
        """
        if not isinstance(operation_name, str) or not operation_name.strip():
            raise ValueError(f"Invalid operation name: {operation_name!r}")

        parent_ref = self._validate_parent(parent) if parent is not None else None
        frozen_args = self._freeze_arguments(arguments)

        feature_id = _new_id()
        while feature_id in self._issued_ids:
            feature_id = _new_id()

        feature = Feature(
            id=feature_id,
            operation_name=operation_name,
            parent=parent_ref,
            arguments=frozen_args,
        )
        self._issued_ids.add(feature_id)
        self._index[feature_id] = len(self._features)
        self._features.append(feature)

        logger.debug(
            f"Feature '{feature_id}' ({operation_name}) angehängt, "
            f"parent={feature.parent_id}, index={len(self._features) - 1}"
        )
        return feature

    def replace(self, ref: RefLike, arguments: Sequence[Any]) -> Feature:
        """
        Ersetzt den Datensatz eines Features durch einen mit neuen Argumenten.

        ID, Position und Parent bleiben gleich, damit Abhängige gültig bleiben.
        FeatureRefs in den neuen Argumenten müssen auf frühere Features zeigen.

        Raises:
            InvalidParentError: Argument-Referenz auf das Feature selbst oder ein späteres
        """
        old = self.get(ref)
        frozen_args = self._freeze_arguments(arguments)
        position = self._index[old.id]
        for arg_ref in iter_refs(frozen_args):
            if self._index[arg_ref.feature_id] >= position:
                raise InvalidParentError(arg_ref.feature_id, f"must precede feature '{old.id}'")

        new = dataclasses.replace(old, arguments=frozen_args)
        self._features[position] = new
        logger.debug(f"Feature '{old.id}' neu parametrisiert: {old.arguments} -> {new.arguments}")
        return new

    def remove(self, ref: RefLike, cascade: bool = False) -> RemovalResult:
        """
        Entfernt ein Feature.

        Ohne cascade schlägt das Entfernen fehl, wenn Abhängige existieren.
        Mit cascade werden zuerst alle transitiv Abhängigen entfernt
        (tiefste zuerst, also rückwärts im Log).

        Raises:
            NotFoundError: ID unbekannt
            DependentFeatureError: Abhängige existieren und cascade=False
        """
        feature = self.get(ref)
        dependents = self.dependents_of(feature.id)

        if dependents and not cascade:
            raise DependentFeatureError(feature.id, [d.id for d in dependents])

        removed = [d.id for d in reversed(dependents)] + [feature.id]
        doomed = set(removed)
        self._features = [f for f in self._features if f.id not in doomed]
        self._rebuild_index()

        logger.info(f"{len(removed)} Feature(s) entfernt: {', '.join(removed)}")
        return RemovalResult.from_removal(feature.id, removed, cascade=cascade)

    def truncate_after(self, ref: RefLike) -> List[Feature]:
        """Entfernt alle Features nach ref; Rückgabe in Log-Reihenfolge."""
        index = self.index_of(ref)
        removed = self._features[index + 1:]
        del self._features[index + 1:]
        self._rebuild_index()
        return removed

    def pop(self) -> Feature:
        """Entfernt das letzte Feature."""
        if not self._features:
            raise IndexError("pop from empty FeatureHistory")
        feature = self._features.pop()
        del self._index[feature.id]
        return feature

    def restore(self, feature: Feature) -> Feature:
        """
        Hängt einen früher entfernten Datensatz wieder an (Redo).

        Nur für IDs, die diese History selbst vergeben hat.
        """
        if feature.id not in self._issued_ids:
            raise InvalidParentError(feature.id, "feature was not issued by this history")
        if feature.id in self._index:
            raise ValueError(f"Feature '{feature.id}' is already part of the history")
        if feature.parent is not None:
            self._validate_parent(feature.parent)
        for arg_ref in feature.argument_refs:
            self._validate_parent(arg_ref)

        self._index[feature.id] = len(self._features)
        self._features.append(feature)
        return feature

    def reserve_ids(self, feature_ids: Iterable[str]):
        """Markiert IDs als vergeben (z.B. beim Laden), damit sie nie neu vergeben werden."""
        self._issued_ids.update(feature_ids)

    def clear(self):
        """Leert das Log. Vergebene IDs bleiben reserviert."""
        self._features.clear()
        self._index.clear()

    # --- Intern ---

    def _resolve_id(self, ref: RefLike) -> str:
        if isinstance(ref, FeatureRef) and ref.history_id != self.history_id:
            raise NotFoundError(ref.feature_id)
        feature_id = ref_id(ref)
        if feature_id not in self._index:
            raise NotFoundError(str(feature_id))
        return feature_id

    def _validate_parent(self, parent: RefLike) -> FeatureRef:
        if isinstance(parent, FeatureRef):
            if parent.history_id != self.history_id:
                raise InvalidParentError(parent.feature_id, f"belongs to history '{parent.history_id}'")
            feature_id = parent.feature_id
        elif isinstance(parent, str):
            feature_id = parent
        else:
            raise InvalidParentError(repr(parent), "not a feature reference")

        if feature_id not in self._index:
            raise InvalidParentError(feature_id)
        return FeatureRef(self.history_id, feature_id)

    def _freeze_arguments(self, arguments: Sequence[Any]) -> tuple:
        if arguments is None:
            return ()
        if isinstance(arguments, (str, bytes)) or not isinstance(arguments, (list, tuple)):
            raise TypeError(f"Arguments must be a list or tuple, got {type(arguments).__name__}")
        return tuple(self._freeze_value(value) for value in arguments)

    def _freeze_value(self, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return tuple(self._freeze_value(v) for v in value)
        if isinstance(value, FeatureRef):
            return self._validate_parent(value)
        if is_enabled("strict_argument_types") and not isinstance(value, _PRIMITIVE_TYPES):
            raise TypeError(f"Unsupported argument type: {type(value).__name__}")
        return value

    def _rebuild_index(self):
        self._index = {feature.id: i for i, feature in enumerate(self._features)}

    def __repr__(self) -> str:
        return f"FeatureHistory(id='{self.history_id}', features={len(self._features)})"
