"""
ParaCore - Feature-Datensätze
=============================

Feature ist der unveränderliche Eintrag der History, FeatureRef die opake
Referenz darauf. Ein Feature hängt von seinem Parent und von allen
FeatureRefs in seinen Argumenten ab.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Optional, Set, Tuple, Union


@dataclass(frozen=True)
class FeatureRef:
    """
    Opake Referenz auf ein Feature.

    Trägt die ID der History, die das Feature vergeben hat, damit
    Referenzen aus einer anderen History erkannt werden.
    """
    history_id: str
    feature_id: str

    def __str__(self) -> str:
        return self.feature_id


# Überall wo eine Referenz erwartet wird, ist auch die rohe Feature-ID erlaubt
RefLike = Union[FeatureRef, str]


def ref_id(ref: RefLike) -> str:
    """Feature-ID aus FeatureRef oder String."""
    if isinstance(ref, FeatureRef):
        return ref.feature_id
    return ref


def iter_refs(values: Iterable[Any]) -> Iterator[FeatureRef]:
    """Alle FeatureRefs in (verschachtelten) Argument-Tupeln."""
    for value in values:
        if isinstance(value, FeatureRef):
            yield value
        elif isinstance(value, (list, tuple)):
            yield from iter_refs(value)


@dataclass(frozen=True)
class Feature:
    """
    Eine aufgezeichnete parametrische Operation.

    Unveränderlich: Neu-Parametrisierung erzeugt einen neuen Datensatz
    (dataclasses.replace) statt die Argumente zu mutieren.
    """
    id: str
    operation_name: str
    parent: Optional[FeatureRef] = None
    arguments: Tuple[Any, ...] = field(default_factory=tuple)

    @property
    def parent_id(self) -> Optional[str]:
        return self.parent.feature_id if self.parent is not None else None

    def ref(self, history_id: str) -> FeatureRef:
        return FeatureRef(history_id=history_id, feature_id=self.id)

    def same_definition(self, other: "Feature") -> bool:
        """Gleiche Operation und Argumente (IDs dürfen abweichen)."""
        return (
            self.operation_name == other.operation_name
            and self.arguments == other.arguments
        )

    @property
    def argument_refs(self) -> Tuple[FeatureRef, ...]:
        return tuple(iter_refs(self.arguments))

    def dependency_ids(self) -> Set[str]:
        """IDs von denen dieses Feature abhängt: Parent plus Argument-Referenzen."""
        ids = {ref.feature_id for ref in self.argument_refs}
        if self.parent is not None:
            ids.add(self.parent.feature_id)
        return ids
