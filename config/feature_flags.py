"""
ParaCore - Feature Flags
========================

Feature Flags ermöglichen inkrementelle Rollouts und einfaches Rollback.
Neue Features werden mit Flag=False eingeführt und nach Validierung aktiviert.

Diese Datei enthält aktive Debug-Flags und Laufzeit-Prüfungen der Engine.
"""

from typing import Dict

FEATURE_FLAGS: Dict[str, bool] = {
    # Debug-Modi
    "history_debug_logging": False,  # Jeden Auswertungsschritt loggen (sehr verbose, nur in Tests aktivieren)

    # Laufzeit-Prüfungen
    "owner_thread_check": True,  # CodeManager-Aufrufe nur vom erzeugenden Thread
    "strict_argument_types": True,  # Feature-Argumente nur Primitive oder FeatureRefs
}


def is_enabled(flag: str) -> bool:
    """
    Prüft ob ein Feature-Flag aktiviert ist.

    Args:
        flag: Name des Feature-Flags

    Returns:
        True wenn aktiviert, False wenn nicht aktiviert oder unbekannt
    """
    return FEATURE_FLAGS.get(flag, False)


def set_flag(flag: str, value: bool) -> None:
    """
    Setzt ein Feature-Flag zur Laufzeit.
    Nützlich für Tests und Debugging.

    Args:
        flag: Name des Feature-Flags
        value: Neuer Wert
    """
    FEATURE_FLAGS[flag] = value


def get_all_flags() -> Dict[str, bool]:
    """Gibt alle Feature-Flags zurück."""
    return FEATURE_FLAGS.copy()
