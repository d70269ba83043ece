"""
ParaCore - Fehler-Taxonomie der Feature-History
================================================

Strukturelle Fehler (InvalidParentError, NotFoundError, DependentFeatureError,
HistoryError) werden synchron beim verursachenden Aufruf geworfen und lassen
die History unverändert.

OperationError entsteht nur bei der Auswertung (CodeManager.get_result /
rebuild) und stoppt den Walk am fehlerhaften Feature.
"""

from typing import Iterable, Optional


class FeatureHistoryError(Exception):
    """Basisklasse für alle Fehler der Feature-Engine."""

    error_code = "history_error"


class InvalidParentError(FeatureHistoryError):
    """Parent-Referenz existiert nicht oder stammt aus einer anderen History."""

    error_code = "invalid_parent"

    def __init__(self, parent_id: str, reason: str = "not found"):
        self.parent_id = parent_id
        self.reason = reason
        super().__init__(f"Invalid parent '{parent_id}': {reason}")


class NotFoundError(FeatureHistoryError, KeyError):
    """Feature-ID ist (nicht mehr) in der History."""

    error_code = "feature_not_found"

    def __init__(self, feature_id: str):
        self.feature_id = feature_id
        super().__init__(f"Feature '{feature_id}' not found")

    def __str__(self) -> str:
        # KeyError quoted sonst die komplette Nachricht
        return self.args[0]


class DependentFeatureError(FeatureHistoryError):
    """Entfernen blockiert, weil andere Features davon abhängen."""

    error_code = "dependent_features"

    def __init__(self, feature_id: str, dependents: Iterable[str]):
        self.feature_id = feature_id
        self.dependents = list(dependents)
        super().__init__(
            f"Feature '{feature_id}' has {len(self.dependents)} dependent feature(s): "
            f"{', '.join(self.dependents)}"
        )


class HistoryError(FeatureHistoryError):
    """Undo/Redo ohne passenden Eintrag."""

    error_code = "history_empty"


class UnknownOperationError(FeatureHistoryError, LookupError):
    """Kein Evaluator für den Operationsnamen registriert."""

    error_code = "unknown_operation"

    def __init__(self, operation_name: str):
        self.operation_name = operation_name
        super().__init__(f"No evaluator registered for operation '{operation_name}'")


class OperationError(FeatureHistoryError):
    """
    Auswertung eines Features ist fehlgeschlagen.

    Attributes:
        feature_id: ID des fehlerhaften Features
        operation_name: Operationsname des Features
        cause: Ursprüngliche Exception (auch als __cause__ verkettet)
    """

    error_code = "operation_failed"

    def __init__(self, feature_id: str, operation_name: str, cause: Optional[BaseException] = None):
        self.feature_id = feature_id
        self.operation_name = operation_name
        self.cause = cause
        message = f"Feature '{feature_id}' ({operation_name}) failed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
