"""
ParaCore - Error Diagnostics Framework
======================================

Kontext-sensitive Fehlererklärungen und "Next Action" Vorschläge für die
Fehler der Feature-Engine. Die Engine selbst loggt und wirft nur; was der
Host dem Nutzer zeigt, kommt von hier.

Usage:
    from parametric.error_diagnostics import ErrorDiagnostics

    try:
        manager.get_result()
    except FeatureHistoryError as e:
        explanation = ErrorDiagnostics.explain_exception(e)
        print(explanation.title)           # Kurze Überschrift
        print(explanation.description)     # Detaillierte Erklärung
        print(explanation.next_actions)    # Liste von Lösungsschritten
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from loguru import logger


class ErrorCategory(Enum):
    """Kategorien für Fehler-Klassifizierung."""
    REFERENCE = "reference"         # Referenz-Auflösung (Parent, ID)
    DEPENDENCY = "dependency"       # Abhängige Features
    OPERATION = "operation"         # Auswertung einer Operation
    PARAMETER = "parameter"         # Parameter-Validierung
    HISTORY = "history"             # Undo/Redo
    EXTENSION = "extension"         # Extension-Registrierung
    UNKNOWN = "unknown"             # Unbekannt


class ErrorSeverity(Enum):
    """Schweregrad für Fehler."""
    INFO = "info"           # Information, kein Handlungsbedarf
    WARNING = "warning"     # Warnung, Operation möglich
    RECOVERABLE = "recoverable"  # Fehler, aber Recovery möglich
    CRITICAL = "critical"   # Kritischer Fehler, Blockierung


class ErrorActionType(Enum):
    """Typen von Aktionen die bei Fehlern ausgeführt werden können."""
    SELECT_REFERENCE = "select_reference"    # Parent neu auswählen
    EDIT_FEATURE = "edit_feature"            # Feature neu parametrisieren
    REMOVE_CASCADE = "remove_cascade"        # Mit Abhängigen entfernen
    UNDO = "undo"                            # Rückgängig machen
    RETRY = "retry"                          # Operation wiederholen


@dataclass
class ErrorExplanation:
    """
    Strukturierte Fehlererklärung für UI-Anzeige.

    Attributes:
        error_code: Maschinenlesbarer Error-Code
        category: Fehler-Kategorie
        severity: Schweregrad
        title: Kurze Überschrift (1 Zeile)
        description: Detaillierte Erklärung (1-2 Sätze)
        technical_details: Technische Details für erfahrene Nutzer
        next_actions: Liste konkreter Lösungsschritte
        action_type: Typ der empfohlenen Aktion (für UI-Buttons)
    """
    error_code: str
    category: ErrorCategory
    severity: ErrorSeverity
    title: str
    description: str
    technical_details: str = ""
    next_actions: List[str] = field(default_factory=list)
    action_type: Optional[ErrorActionType] = None
    context: Dict[str, Any] = field(default_factory=dict)

    def to_user_message(self, include_technical: bool = False) -> str:
        """Formatiert für Nutzer-Anzeige."""
        lines = [f"**{self.title}**", ""]
        lines.append(self.description)

        if self.next_actions:
            lines.append("\n**Nächste Schritte:**")
            for i, action in enumerate(self.next_actions, 1):
                lines.append(f"{i}. {action}")

        if include_technical and self.technical_details:
            lines.append(f"\n_Technisch: {self.technical_details}_")

        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Serialisierung für Persistence/Logging."""
        return {
            "error_code": self.error_code,
            "category": self.category.value,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "technical_details": self.technical_details,
            "next_actions": self.next_actions,
            "action_type": self.action_type.value if self.action_type else None,
        }


# =============================================================================
# Error Knowledge Base
# =============================================================================

ERROR_KNOWLEDGE_BASE: Dict[str, Dict[str, Any]] = {
    "invalid_parent": {
        "category": ErrorCategory.REFERENCE,
        "severity": ErrorSeverity.RECOVERABLE,
        "title": "Ungültiges Parent-Feature",
        "description": "Das angegebene Parent-Feature existiert nicht oder gehört zu einem anderen Dokument.",
        "technical_details": "Parent reference did not resolve in this FeatureHistory",
        "next_actions": [
            "Wählen Sie ein Parent-Feature aus dem aktuellen Dokument",
            "Prüfen Sie ob das Parent-Feature zurückgerollt oder entfernt wurde",
        ],
        "action_type": "select_reference",
    },
    "feature_not_found": {
        "category": ErrorCategory.REFERENCE,
        "severity": ErrorSeverity.RECOVERABLE,
        "title": "Feature nicht gefunden",
        "description": "Das Feature ist nicht (mehr) Teil der History.",
        "technical_details": "Feature id lookup miss",
        "next_actions": [
            "Prüfen Sie ob das Feature entfernt oder zurückgerollt wurde",
            "Verwenden Sie 'Wiederherstellen' um zurückgerollte Features zurückzuholen",
        ],
    },
    "dependent_features": {
        "category": ErrorCategory.DEPENDENCY,
        "severity": ErrorSeverity.WARNING,
        "title": "Feature hat Abhängige",
        "description": "Andere Features bauen auf diesem Feature auf und würden ungültig werden.",
        "technical_details": "Removal blocked by dependent features",
        "next_actions": [
            "Entfernen Sie zuerst die abhängigen Features",
            "Oder entfernen Sie das Feature zusammen mit allen Abhängigen",
        ],
        "action_type": "remove_cascade",
    },
    "history_empty": {
        "category": ErrorCategory.HISTORY,
        "severity": ErrorSeverity.INFO,
        "title": "Nichts rückgängig zu machen",
        "description": "Es gibt keinen Schritt, der rückgängig gemacht oder wiederhergestellt werden kann.",
        "next_actions": [],
    },
    "unknown_operation": {
        "category": ErrorCategory.OPERATION,
        "severity": ErrorSeverity.CRITICAL,
        "title": "Unbekannte Operation",
        "description": "Für diese Operation ist kein Evaluator registriert.",
        "technical_details": "No evaluator registered for operation name",
        "next_actions": [
            "Prüfen Sie ob die Extension, die diese Operation liefert, geladen ist",
            "Entfernen Sie das Feature",
        ],
    },
    "operation_failed": {
        "category": ErrorCategory.OPERATION,
        "severity": ErrorSeverity.RECOVERABLE,
        "title": "Feature konnte nicht berechnet werden",
        "description": "Die Operation hat mit den aktuellen Parametern keine gültige Geometrie erzeugt.",
        "technical_details": "Feature evaluation raised",
        "next_actions": [
            "Prüfen Sie die Parameter des Features (z.B. Abmessungen größer als 0)",
            "Bearbeiten Sie das Feature mit gültigen Werten",
            "Machen Sie den letzten Schritt rückgängig",
        ],
        "action_type": "edit_feature",
    },
    "parameter_invalid": {
        "category": ErrorCategory.PARAMETER,
        "severity": ErrorSeverity.RECOVERABLE,
        "title": "Ungültiger Parameter",
        "description": "Ein Tool-Parameter hat den falschen Typ oder liegt außerhalb der Grenzen.",
        "next_actions": [
            "Korrigieren Sie den markierten Wert",
        ],
        "action_type": "retry",
    },
    "extension_registration": {
        "category": ErrorCategory.EXTENSION,
        "severity": ErrorSeverity.WARNING,
        "title": "Extension konnte nicht geladen werden",
        "description": "Die Extension ist unvollständig oder ihre ID ist bereits vergeben.",
        "next_actions": [
            "Prüfen Sie das Manifest der Extension",
            "Vergeben Sie eine eindeutige Extension-ID",
        ],
    },
}


# =============================================================================
# Error Diagnostics Engine
# =============================================================================

class ErrorDiagnostics:
    """
    Zentrale Fehler-Diagnostik Engine.

    Bietet:
    - Erklärungen für alle bekannten Error-Codes
    - Kontext-sensitive Next-Action Vorschläge
    - Erklärung direkt aus einer Exception (error_code + Attribute)
    """

    # Registry für custom error handlers
    _custom_handlers: Dict[str, Callable] = {}

    @classmethod
    def explain(
        cls,
        error_code: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None
    ) -> ErrorExplanation:
        """
        Erzeugt eine erklärte Fehlermeldung für den Nutzer.

        Args:
            error_code: Der Error-Code (z.B. "operation_failed")
            context: Zusätzlicher Kontext (feature_id, operation_name, ...)
            original_exception: Originale Exception falls vorhanden
        """
        context = context or {}
        kb_entry = ERROR_KNOWLEDGE_BASE.get(error_code)

        if kb_entry:
            action_type = None
            if "action_type" in kb_entry:
                action_type = ErrorActionType(kb_entry["action_type"])

            technical = kb_entry.get("technical_details", "")
            if original_exception is not None:
                technical = f"{technical} | {type(original_exception).__name__}: {original_exception}".lstrip(" |")

            explanation = ErrorExplanation(
                error_code=error_code,
                category=kb_entry["category"],
                severity=kb_entry["severity"],
                title=kb_entry["title"],
                description=kb_entry["description"],
                technical_details=technical,
                next_actions=list(kb_entry.get("next_actions", [])),
                action_type=action_type,
                context=dict(context),
            )
        else:
            explanation = cls._create_unknown_explanation(error_code, context, original_exception)

        if error_code in cls._custom_handlers:
            explanation = cls._custom_handlers[error_code](explanation, context)

        return cls._enrich_with_context(explanation, context)

    @classmethod
    def explain_exception(cls, exc: BaseException) -> ErrorExplanation:
        """
        Erklärung aus einer Engine-/Extension-Exception.

        Nutzt das error_code Klassenattribut und übernimmt bekannte
        Attribute (feature_id, operation_name, dependents, ...) in den Kontext.
        """
        error_code = getattr(exc, "error_code", "system_unknown")
        context = {}
        for attr in ("feature_id", "parent_id", "operation_name", "dependents", "key", "extension_id"):
            value = getattr(exc, attr, None)
            if value is not None:
                context[attr] = value

        cause = getattr(exc, "cause", None)
        return cls.explain(error_code, context, cause if cause is not None else exc)

    @classmethod
    def register_custom_handler(
        cls,
        error_code: str,
        handler: Callable[[ErrorExplanation, Dict], ErrorExplanation]
    ):
        """Registriert einen Custom Handler für einen Error-Code."""
        cls._custom_handlers[error_code] = handler
        logger.debug(f"Registered custom error handler for {error_code}")

    @classmethod
    def get_suggested_actions(cls, error_code: str) -> List[str]:
        """Gibt vorgeschlagene Aktionen für einen Error-Code zurück."""
        kb_entry = ERROR_KNOWLEDGE_BASE.get(error_code)
        return list(kb_entry.get("next_actions", [])) if kb_entry else []

    @classmethod
    def get_errors_by_category(cls, category: ErrorCategory) -> List[str]:
        """Gibt alle Error-Codes einer Kategorie zurück."""
        return [
            code for code, entry in ERROR_KNOWLEDGE_BASE.items()
            if entry["category"] == category
        ]

    @classmethod
    def _create_unknown_explanation(
        cls,
        error_code: str,
        context: Dict[str, Any],
        exception: Optional[BaseException]
    ) -> ErrorExplanation:
        """Erzeugt Erklärung für unbekannten Fehler."""
        tech_details = f"Unknown error code: {error_code}"
        if exception:
            tech_details += f" | Exception: {type(exception).__name__}: {str(exception)}"

        return ErrorExplanation(
            error_code=error_code,
            category=ErrorCategory.UNKNOWN,
            severity=ErrorSeverity.CRITICAL,
            title="Unbekannter Fehler",
            description=f"Ein unerwarteter Fehler ist aufgetreten (Code: {error_code}).",
            technical_details=tech_details,
            next_actions=[
                "Speichern Sie Ihr Projekt",
                "Notieren Sie die Schritte die zum Fehler geführt haben",
            ],
            context=dict(context),
        )

    @classmethod
    def _enrich_with_context(
        cls,
        explanation: ErrorExplanation,
        context: Dict[str, Any]
    ) -> ErrorExplanation:
        """Reichert Erklärung mit kontext-spezifischen Details an."""
        feature_id = context.get("feature_id")
        operation_name = context.get("operation_name")

        if explanation.error_code == "operation_failed" and feature_id:
            label = f"{operation_name} ({feature_id})" if operation_name else feature_id
            explanation.next_actions.insert(0, f"Öffnen Sie das Feature '{label}'")

        dependents = context.get("dependents")
        if explanation.error_code == "dependent_features" and dependents:
            explanation.next_actions.append(
                f"Betroffene Features: {', '.join(str(d) for d in dependents)}"
            )

        return explanation


# =============================================================================
# Convenience Functions
# =============================================================================

def explain_error(
    error_code: str,
    context: Optional[Dict[str, Any]] = None
) -> ErrorExplanation:
    """Shortcut für ErrorDiagnostics.explain()."""
    return ErrorDiagnostics.explain(error_code, context)


def get_next_actions(error_code: str) -> List[str]:
    """Shortcut für ErrorDiagnostics.get_suggested_actions()."""
    return ErrorDiagnostics.get_suggested_actions(error_code)


def format_error_for_user(exc: BaseException, include_technical: bool = False) -> str:
    """Formatiert eine Exception direkt als User-String."""
    return ErrorDiagnostics.explain_exception(exc).to_user_message(include_technical)
