"""
ParaCore - Code Manager
=======================

Brücke zwischen Extension-Aufrufen und der Feature-History.

Der CodeManager besitzt genau eine FeatureHistory, den Ergebnis-Cache
(Feature-ID -> GeometryResult), den Dependency-Graph für Stale-Tracking und
den Redo-Stack.

Neuberechnung ist lazy: add_feature() markiert nur stale, erst
get_result() bzw. rebuild() wertet aus. Extensions können so mehrere
add_feature()-Aufrufe hintereinander machen, ohne Zwischenergebnisse zu
berechnen, die niemand liest.

Usage:
    manager = CodeManager()
    r1 = manager.add_feature("makeBaseBox", None, [10, 10, 10])
    r2 = manager.add_feature("makeBaseBox", r1, [5, 5, 5])

    result = manager.get_result()      # Head (r2)
    manager.rollback_to(r1)            # r2 landet auf dem Redo-Stack
    manager.redo()                     # r2 ist wieder da (stale)
"""

from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

from loguru import logger

from config.feature_flags import is_enabled
from parametric import geometry
from parametric.errors import HistoryError, NotFoundError, OperationError
from parametric.feature_dependency import FeatureDependencyGraph
from parametric.feature_history import FeatureHistory
from parametric.history_serialization import history_from_dict, history_to_dict, load_history, save_history
from parametric.features.base import Feature, FeatureRef, RefLike
from parametric.geometry import GeometryResult
from parametric.result_types import RebuildResult, RemovalResult
from parametric.thread_guard import OwnerThreadGuard


class CodeManager:
    """
    Auswertungs-Engine für eine Feature-History.

    Ein CodeManager pro Dokument/Session. Nicht thread-safe: alle Aufrufe
    müssen vom erzeugenden Thread kommen (OwnerThreadGuard).
    """

    def __init__(self, history_id: Optional[str] = None):
        self._history = FeatureHistory(history_id)
        self._graph = FeatureDependencyGraph()

        # Feature ID -> Ergebnis (nur für nicht-stale Features)
        self._results: Dict[str, GeometryResult] = {}

        # Feature ID -> letzter Auswertungsfehler
        self._errors: Dict[str, OperationError] = {}

        # Zurückgerollte Features, zuletzt entferntes oben
        self._redo_stack: List[Feature] = []

        self._guard = OwnerThreadGuard()

        logger.debug(f"CodeManager für History '{self._history.history_id}' erstellt")

    # --- Abfragen ---

    @property
    def history_id(self) -> str:
        return self._history.history_id

    def __len__(self) -> int:
        return len(self._history)

    def __contains__(self, ref: RefLike) -> bool:
        return ref in self._history

    def features(self) -> Iterator[Feature]:
        """Features in Abhängigkeits-Reihenfolge (neu startbar)."""
        return self._history.iterate()

    def get_feature(self, ref: RefLike) -> Feature:
        return self._history.get(ref)

    @property
    def head(self) -> Optional[FeatureRef]:
        feature = self._history.head
        return feature.ref(self.history_id) if feature is not None else None

    @property
    def can_undo(self) -> bool:
        return len(self._history) > 0

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    def is_stale(self, ref: RefLike) -> bool:
        return self._graph.is_dirty(self._history.get(ref).id)

    def stale_ids(self) -> List[str]:
        """Alle stale Features in Log-Reihenfolge."""
        return self._graph.dirty_features()

    def last_error(self, ref: RefLike) -> Optional[OperationError]:
        """Letzter Auswertungsfehler eines Features (None wenn keiner)."""
        return self._errors.get(self._history.get(ref).id)

    # --- Extension-API ---

    def add_feature(self, operation_name: str, parent: Optional[RefLike] = None,
                    arguments: Sequence[Any] = ()) -> FeatureRef:
        """
        Hängt ein Feature an und gibt seine Referenz zurück.

        Das Feature ist danach stale; ausgewertet wird beim nächsten
        get_result()/rebuild().

        Raises:
            InvalidParentError: parent unbekannt oder aus anderer History
        """
        self._guard.ensure_owner_thread("add_feature")

        feature = self._history.append(operation_name, parent, arguments)
        self._graph.add_feature(feature.id, feature.parent_id, references=self._reference_ids(feature))
        self._redo_stack.clear()

        logger.info(f"Feature '{feature.id}' hinzugefügt: {operation_name}{list(feature.arguments)}")
        return feature.ref(self.history_id)

    def get_result(self, ref: Optional[RefLike] = None) -> GeometryResult:
        """
        Ergebnis eines Features (ohne ref: des letzten Features).

        Wertet die Parent-Kette ab dem nächsten Vorfahren mit gültigem Cache
        aus und cached jedes Zwischenergebnis.

        Raises:
            NotFoundError: ref unbekannt oder History leer
            OperationError: Auswertung eines Features der Kette fehlgeschlagen
        """
        self._guard.ensure_owner_thread("get_result")

        if ref is None:
            head = self._history.head
            if head is None:
                raise NotFoundError("<head>")
            feature = head
        else:
            feature = self._history.get(ref)

        for feature_id in self._graph.get_evaluation_chain(feature.id):
            self._evaluate_feature(feature_id)

        return self._results[feature.id]

    # --- Struktur-Operationen ---

    def edit_feature(self, ref: RefLike, arguments: Sequence[Any]) -> FeatureRef:
        """
        Neu-Parametrisierung: ersetzt den Datensatz (gleiche ID).

        Das Feature und alle transitiv Abhängigen werden stale.

        Raises:
            InvalidParentError: Argument-Referenz zeigt nicht auf ein früheres Feature
        """
        self._guard.ensure_owner_thread("edit_feature")

        feature = self._history.replace(ref, arguments)
        self._graph.set_references(feature.id, self._reference_ids(feature))
        for feature_id in self._graph.mark_dirty(feature.id):
            self._results.pop(feature_id, None)
            self._errors.pop(feature_id, None)
        self._redo_stack.clear()

        logger.info(f"Feature '{feature.id}' neu parametrisiert: {list(feature.arguments)}")
        return feature.ref(self.history_id)

    def remove(self, ref: RefLike, cascade: bool = False) -> RemovalResult:
        """
        Entfernt ein Feature (mit cascade auch alle Abhängigen).

        Raises:
            NotFoundError: ref unbekannt
            DependentFeatureError: Abhängige existieren und cascade=False
        """
        self._guard.ensure_owner_thread("remove")

        result = self._history.remove(ref, cascade=cascade)
        for feature_id in result.removed_ids:
            self._forget(feature_id)
        self._redo_stack.clear()
        return result

    def undo(self) -> Feature:
        """
        Nimmt das letzte Feature zurück (auf den Redo-Stack).

        Raises:
            HistoryError: History ist leer
        """
        self._guard.ensure_owner_thread("undo")

        if not self._history:
            raise HistoryError("Nothing to undo")

        feature = self._history.pop()
        self._forget(feature.id)
        self._redo_stack.append(feature)

        logger.info(f"Undo: Feature '{feature.id}' ({feature.operation_name})")
        return feature

    def rollback_to(self, ref: RefLike) -> List[Feature]:
        """
        Kürzt die History auf alles bis einschließlich ref.

        Entfernte Features landen so auf dem Redo-Stack, dass das Feature
        direkt nach ref als erstes wiederhergestellt wird.

        Returns:
            Entfernte Features in Log-Reihenfolge
        """
        self._guard.ensure_owner_thread("rollback_to")

        removed = self._history.truncate_after(ref)
        for feature in reversed(removed):
            self._forget(feature.id)
            self._redo_stack.append(feature)

        logger.info(f"Rollback auf '{self._history.get(ref).id}': {len(removed)} Feature(s) zurückgenommen")
        return removed

    def redo(self) -> FeatureRef:
        """
        Stellt das zuletzt zurückgenommene Feature wieder her (stale).

        Raises:
            HistoryError: Redo-Stack ist leer
        """
        self._guard.ensure_owner_thread("redo")

        if not self._redo_stack:
            raise HistoryError("Nothing to redo")

        feature = self._history.restore(self._redo_stack[-1])
        self._redo_stack.pop()
        self._graph.add_feature(feature.id, feature.parent_id, references=self._reference_ids(feature))

        logger.info(f"Redo: Feature '{feature.id}' ({feature.operation_name})")
        return feature.ref(self.history_id)

    def rebuild(self) -> RebuildResult:
        """
        Wertet alle stale Features in Log-Reihenfolge aus.

        Fehler werden gesammelt statt geworfen. Nachfahren eines
        fehlgeschlagenen Features werden nicht ausgewertet und als
        übersprungen gemeldet, nicht als eigene Fehler.
        """
        self._guard.ensure_owner_thread("rebuild")

        evaluated: List[str] = []
        failed: List[str] = []
        skipped: List[str] = []
        errors: Dict[str, str] = {}
        blocked = set()

        for feature_id in self._graph.dirty_features():
            if self._graph.get_parent(feature_id) in blocked:
                blocked.add(feature_id)
                skipped.append(feature_id)
                continue
            try:
                self._evaluate_feature(feature_id)
            except OperationError as e:
                blocked.add(feature_id)
                failed.append(feature_id)
                errors[feature_id] = str(e.cause) if e.cause is not None else str(e)
            else:
                evaluated.append(feature_id)

        return RebuildResult.from_rebuild(evaluated, failed, skipped, errors).log("Rebuild")

    def get_statistics(self) -> dict:
        stats = self._graph.get_statistics()
        stats.update({
            'cached_results': len(self._results),
            'failed_features': len(self._errors),
            'redo_depth': len(self._redo_stack),
        })
        return stats

    # --- Persistenz ---

    def to_dict(self) -> dict:
        """Serialisiert die History (ohne Caches und Redo-Stack)."""
        return history_to_dict(self._history)

    @classmethod
    def from_dict(cls, data: dict) -> "CodeManager":
        """Lädt eine History; alle Features starten stale."""
        return cls._from_history(history_from_dict(data))

    def save(self, path: Union[str, Path]) -> Path:
        """Schreibt die History als JSON-Datei."""
        return save_history(self._history, path)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "CodeManager":
        """Liest eine mit save() geschriebene JSON-Datei."""
        return cls._from_history(load_history(path))

    @classmethod
    def _from_history(cls, history: FeatureHistory) -> "CodeManager":
        manager = cls(history.history_id)
        manager._history = history
        manager._graph.sync(history.iterate())
        logger.debug(f"CodeManager geladen: {len(history)} Features, alle stale")
        return manager

    # --- Intern ---

    def _evaluate_feature(self, feature_id: str) -> GeometryResult:
        feature = self._history.get(feature_id)
        parent_result = self._results[feature.parent_id] if feature.parent is not None else None

        try:
            result = geometry.evaluate(feature.operation_name, parent_result, feature.arguments)
        except Exception as e:
            error = OperationError(feature.id, feature.operation_name, e)
            self._errors[feature.id] = error
            self._results.pop(feature.id, None)
            logger.error(f"Auswertung fehlgeschlagen: {error}")
            raise error from e

        result = result.with_feature(feature.id)
        self._results[feature.id] = result
        self._errors.pop(feature.id, None)
        self._graph.clear_dirty(feature.id)

        if is_enabled("history_debug_logging"):
            logger.debug(f"[EVAL] {feature.id} {feature.operation_name}{list(feature.arguments)} -> {result!r}")
        return result

    @staticmethod
    def _reference_ids(feature: Feature) -> List[str]:
        return [ref.feature_id for ref in feature.argument_refs]

    def _forget(self, feature_id: str):
        self._graph.remove_feature(feature_id)
        self._results.pop(feature_id, None)
        self._errors.pop(feature_id, None)

    def __repr__(self) -> str:
        return (f"CodeManager(history='{self.history_id}', features={len(self._history)}, "
                f"stale={len(self._graph.dirty_features())})")
