"""
ParaCore - Zentralisierte Toleranz-Konfiguration
================================================

Alle Toleranzen der Feature-Auswertung an einem Ort.

Verwendung:
    from config.tolerances import Tolerances

    # Direkt als Klassenvariablen
    min_dim = Tolerances.MIN_DIMENSION

    # Oder via Convenience-Funktionen
    from config.tolerances import dimension_tolerance
    min_dim = dimension_tolerance()
"""


class Tolerances:
    """
    Zentrale Toleranz-Konstanten für ParaCore.

    Kategorien:
    - MIN_*: Untergrenzen für Operations-Argumente
    - VOLUME_*: Vergleich von Ergebnis-Volumen
    - COMPARE_*: Gleichheitsprüfung von Koordinaten
    """

    # Kleinste zulässige Abmessung (Länge, Radius, Höhe) in mm.
    # Alles darunter gilt als degenerierte Geometrie -> OperationError
    MIN_DIMENSION = 1e-6

    # Kleinster zulässiger Skalierungsfaktor
    MIN_SCALE_FACTOR = 1e-9

    # Volumen-Vergleich (mm³)
    VOLUME_PRECISION = 1e-9

    # Koordinaten-Vergleich in Tests und bei Bounding-Box-Gleichheit
    COMPARE_POINT = 1e-6  # 1µm


def dimension_tolerance() -> float:
    """Untergrenze für Abmessungen."""
    return Tolerances.MIN_DIMENSION


def volume_precision() -> float:
    """Toleranz für Volumen-Vergleiche."""
    return Tolerances.VOLUME_PRECISION


def validate_tolerances():
    """
    Validiert dass alle Toleranzen sinnvolle Werte haben.
    Nützlich für Tests und Debugging.

    Raises:
        AssertionError wenn Toleranzen ungültig sind
    """
    assert 0 < Tolerances.MIN_DIMENSION < 1, "MIN_DIMENSION außerhalb des Bereichs"
    assert 0 < Tolerances.MIN_SCALE_FACTOR < 1, "MIN_SCALE_FACTOR außerhalb des Bereichs"
    assert Tolerances.VOLUME_PRECISION > 0, "VOLUME_PRECISION muss positiv sein"
    assert Tolerances.COMPARE_POINT > 0, "COMPARE_POINT muss positiv sein"
