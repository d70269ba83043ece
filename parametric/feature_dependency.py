"""
ParaCore - Feature Dependency Graph
===================================

Inkrementelle Neuberechnung durch Dirty-Tracking.

Das Problem:
- Ein geändertes Feature macht nur seine Nachfahren ungültig
- Features VOR der Änderung dürfen NICHT neu berechnet werden

Die Lösung:
- Der Graph kennt Reihenfolge, Parent und Argument-Referenzen jedes Features
- mark_dirty() macht einen einzigen Vorwärts-Scan ab dem geänderten Index
  (Reihenfolge == Abhängigkeits-Reihenfolge)
- get_evaluation_chain() liefert die Parent-Kette ab dem nächsten gültigen
  Vorfahren bis zum angefragten Feature
"""

from typing import Dict, Iterable, List, Optional, Set, TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from parametric.features.base import Feature


class FeatureDependencyGraph:
    """
    Verwaltet Parent-Abhängigkeiten und den Stale-Status der Features.

    Usage:
        graph = FeatureDependencyGraph()
        graph.add_feature("box_1", parent_id=None)
        graph.add_feature("box_2", parent_id="box_1")
        graph.clear_dirty("box_1")
        graph.clear_dirty("box_2")

        # Wenn box_1 geändert wird:
        graph.mark_dirty("box_1")
        # -> ["box_1", "box_2"]
    """

    def __init__(self):
        # Feature IDs in Log-Reihenfolge
        self._order: List[str] = []

        # Feature ID -> Parent ID
        self._parents: Dict[str, Optional[str]] = {}

        # Feature ID -> per Argument referenzierte Feature IDs
        self._references: Dict[str, Set[str]] = {}

        # Feature ID -> direkte Kinder (reverse lookup)
        self._dependents: Dict[str, Set[str]] = {}

        # Mapping Feature ID -> Index (für schnellen Lookup)
        self._feature_index: Dict[str, int] = {}

        # Set von Feature-IDs deren Ergebnis nicht mehr aktuell ist
        self._dirty_features: Set[str] = set()

        logger.debug("FeatureDependencyGraph initialisiert")

    def clear(self):
        """Setzt den Graph zurück."""
        self._order.clear()
        self._parents.clear()
        self._references.clear()
        self._dependents.clear()
        self._feature_index.clear()
        self._dirty_features.clear()

    def __contains__(self, feature_id: str) -> bool:
        return feature_id in self._feature_index

    def add_feature(self, feature_id: str, parent_id: Optional[str] = None, dirty: bool = True,
                    references: Iterable[str] = ()):
        """
        Fügt ein Feature am Ende hinzu.

        Neue Features sind stale bis zur ersten Auswertung.
        references: IDs die das Feature über seine Argumente referenziert
        """
        if parent_id is not None and parent_id not in self._feature_index:
            raise KeyError(f"Parent '{parent_id}' is not part of the graph")
        references = set(references)
        unknown = [r for r in references if r not in self._feature_index]
        if unknown:
            raise KeyError(f"Referenced features {sorted(unknown)} are not part of the graph")

        self._feature_index[feature_id] = len(self._order)
        self._order.append(feature_id)
        self._parents[feature_id] = parent_id
        self._references[feature_id] = references
        self._dependents.setdefault(feature_id, set())
        if parent_id is not None:
            self._dependents[parent_id].add(feature_id)
        if dirty:
            self._dirty_features.add(feature_id)

    def remove_feature(self, feature_id: str):
        """Entfernt ein Feature aus dem Graph (unbekannte IDs werden ignoriert)."""
        if feature_id not in self._feature_index:
            return

        parent_id = self._parents.pop(feature_id)
        self._references.pop(feature_id, None)
        if parent_id is not None and parent_id in self._dependents:
            self._dependents[parent_id].discard(feature_id)
        self._dependents.pop(feature_id, None)
        self._dirty_features.discard(feature_id)

        self._order.remove(feature_id)
        self._feature_index = {fid: i for i, fid in enumerate(self._order)}

    def sync(self, features: Iterable["Feature"], clean_ids: Iterable[str] = ()):
        """
        Baut den Graph aus einer Feature-Liste neu auf.

        Alle Features außer clean_ids gelten danach als dirty.
        """
        clean = set(clean_ids)
        self.clear()
        for feature in features:
            self.add_feature(feature.id, feature.parent_id, dirty=feature.id not in clean,
                             references=(ref.feature_id for ref in feature.argument_refs))

    def set_references(self, feature_id: str, references: Iterable[str]):
        """Ersetzt die Argument-Referenzen eines Features (nach Neu-Parametrisierung)."""
        if feature_id not in self._feature_index:
            raise KeyError(f"Feature '{feature_id}' is not part of the graph")
        self._references[feature_id] = set(references)

    # --- Dirty-Tracking ---

    def mark_dirty(self, feature_id: str) -> List[str]:
        """
        Markiert ein Feature und alle transitiv Abhängigen als stale.

        Returns:
            Betroffene Feature-IDs in Log-Reihenfolge
        """
        affected = self.get_affected_features(feature_id)
        self._dirty_features.update(affected)
        logger.debug(f"Feature '{feature_id}' als dirty markiert, {len(affected)} betroffen, "
                     f"{len(self._dirty_features)} total dirty")
        return affected

    def get_affected_features(self, feature_id: str) -> List[str]:
        """
        Feature plus alle transitiv Abhängigen, ohne den Status zu ändern.

        Ein Vorwärts-Scan reicht: ein späteres Feature kann nur von
        früheren abhängen.
        """
        if feature_id not in self._feature_index:
            return []

        start = self._feature_index[feature_id]
        chain = {feature_id}
        affected = [feature_id]
        for fid in self._order[start + 1:]:
            if self._parents[fid] in chain or not chain.isdisjoint(self._references[fid]):
                chain.add(fid)
                affected.append(fid)
        return affected

    def is_dirty(self, feature_id: str) -> bool:
        return feature_id in self._dirty_features

    def clear_dirty(self, feature_id: Optional[str] = None):
        """Löscht die dirty-Markierung eines Features (oder aller)."""
        if feature_id is None:
            self._dirty_features.clear()
        else:
            self._dirty_features.discard(feature_id)

    def dirty_features(self) -> List[str]:
        """Alle stale Features in Log-Reihenfolge."""
        return [fid for fid in self._order if fid in self._dirty_features]

    def get_evaluation_chain(self, feature_id: str) -> List[str]:
        """
        Parent-Kette die für feature_id neu berechnet werden muss.

        Läuft vom Feature aufwärts bis zum ersten nicht-stale Vorfahren
        (dessen Cache gültig ist) und gibt die Kette in
        Auswertungs-Reihenfolge zurück. Leer wenn feature_id aktuell ist.
        """
        chain = []
        current = feature_id
        while current is not None and current in self._dirty_features:
            chain.append(current)
            current = self._parents.get(current)
        chain.reverse()
        return chain

    def get_parent(self, feature_id: str) -> Optional[str]:
        return self._parents.get(feature_id)

    def get_children(self, feature_id: str) -> Set[str]:
        return set(self._dependents.get(feature_id, set()))

    def get_statistics(self) -> dict:
        """Gibt Statistiken über den Graph zurück."""
        return {
            'total_features': len(self._order),
            'total_dependencies': sum(1 for p in self._parents.values() if p is not None),
            'dirty_features': len(self._dirty_features),
            'root_features': sum(1 for p in self._parents.values() if p is None),
        }
