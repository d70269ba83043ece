"""
History Serialization

to_dict/from_dict für FeatureHistory. Caches werden nicht gespeichert:
geladene Features sind stale und werden beim ersten Zugriff neu berechnet.

Layout (HISTORY_FORMAT_VERSION = 1):
    {
        "format_version": 1,
        "history_id": "1a2b3c4d",
        "issued_ids": [...],        # auch entfernte IDs, damit keine ID wiederverwendet wird
        "features": [
            {"id": ..., "operation_name": ..., "parent": id | None, "arguments": [...]},
        ]
    }

FeatureRefs in Argumenten werden als {"$ref": feature_id} abgelegt.
"""

import json
from pathlib import Path
from typing import Any, Union

from loguru import logger

from config.version import HISTORY_FORMAT_VERSION
from parametric.feature_history import FeatureHistory
from parametric.features.base import Feature, FeatureRef

_REF_KEY = "$ref"


def _encode_value(value: Any) -> Any:
    if isinstance(value, FeatureRef):
        return {_REF_KEY: value.feature_id}
    if isinstance(value, tuple):
        return [_encode_value(v) for v in value]
    return value


def _decode_value(value: Any, history_id: str) -> Any:
    if isinstance(value, dict):
        if set(value) != {_REF_KEY}:
            raise ValueError(f"Unsupported argument object: {value!r}")
        return FeatureRef(history_id, value[_REF_KEY])
    if isinstance(value, list):
        return tuple(_decode_value(v, history_id) for v in value)
    return value


def history_to_dict(history: FeatureHistory) -> dict:
    """
    Serialisiert eine History zu einem JSON-kompatiblen Dictionary.

    Returns:
        Dictionary mit allen Feature-Daten
    """
    features_data = []
    for feat in history.iterate():
        features_data.append({
            "id": feat.id,
            "operation_name": feat.operation_name,
            "parent": feat.parent_id,
            "arguments": [_encode_value(a) for a in feat.arguments],
        })

    return {
        "format_version": HISTORY_FORMAT_VERSION,
        "history_id": history.history_id,
        "issued_ids": sorted(history.issued_ids),
        "features": features_data,
    }


def history_from_dict(data: dict) -> FeatureHistory:
    """
    Baut eine History aus einem Dictionary wieder auf.

    Die Features werden in gespeicherter Reihenfolge über restore()
    eingefügt, dadurch gelten die gleichen Integritätsprüfungen wie beim
    Anhängen (Parent und Argument-Referenzen müssen vorher existieren).

    Raises:
        ValueError: Unbekannte format_version oder kaputte Daten
        InvalidParentError: Parent oder {"$ref": ...} zeigt nicht auf ein früheres Feature
    """
    version = data.get("format_version")
    if version != HISTORY_FORMAT_VERSION:
        raise ValueError(f"Unsupported history format version: {version!r}")

    history = FeatureHistory(data["history_id"])
    history_id = history.history_id

    features = data.get("features", [])
    issued = set(data.get("issued_ids", [])) | {f["id"] for f in features}
    history.reserve_ids(issued)

    for feat_dict in features:
        parent = feat_dict.get("parent")
        feature = Feature(
            id=feat_dict["id"],
            operation_name=feat_dict["operation_name"],
            parent=FeatureRef(history_id, parent) if parent is not None else None,
            arguments=tuple(_decode_value(a, history_id) for a in feat_dict.get("arguments", [])),
        )
        history.restore(feature)

    logger.debug(f"History '{history_id}' geladen: {len(history)} Features")
    return history


def save_history(history: FeatureHistory, path: Union[str, Path]) -> Path:
    """Schreibt die History als JSON-Datei."""
    path = Path(path)
    path.write_text(json.dumps(history_to_dict(history), indent=2), encoding="utf-8")
    logger.info(f"History gespeichert: {path}")
    return path


def load_history(path: Union[str, Path]) -> FeatureHistory:
    """Liest eine mit save_history geschriebene JSON-Datei."""
    path = Path(path)
    data = json.loads(path.read_text(encoding="utf-8"))
    return history_from_dict(data)
