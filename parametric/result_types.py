"""
ParaCore - Unified Result Types for Operation Transparency

Provides structured result types for batch operations on the feature history
that clearly differentiate between:
- SUCCESS: Operation completed as expected
- WARNING: Operation completed but some items were skipped or failed
- EMPTY: Operation completed but had nothing to do (not an error)
- ERROR: Operation failed and could not complete

Single structural calls (append, get, remove without cascade) raise instead;
these results describe what a batch call (cascade removal, rebuild) did.

Usage:
    from parametric.result_types import OperationResult, ResultStatus

    result = manager.rebuild()
    if result.has_failed_items:
        for feature_id in result.failed_items:
            ...
    result.log("Rebuild")
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional

from loguru import logger


class ResultStatus(Enum):
    """
    Clear operation outcome states for logging and reports.

    SUCCESS  - Operation completed exactly as expected
    WARNING  - Operation completed but has partial results
    EMPTY    - Operation completed correctly but had nothing to do
    ERROR    - Operation failed and could not complete
    """
    SUCCESS = auto()
    WARNING = auto()
    EMPTY = auto()
    ERROR = auto()


@dataclass
class OperationResult:
    """
    Unified result type for history operations.

    Attributes:
        status: ResultStatus indicating outcome type
        value: The result value - None for ERROR/EMPTY
        message: Human-readable description of what happened
        details: Additional context
        warnings: List of non-fatal issues encountered
        failed_items: List of items that failed (for partial success)
    """
    status: ResultStatus
    value: Any = None
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    failed_items: List[Any] = field(default_factory=list)

    # --- Factory Methods ---

    @classmethod
    def success(cls, value: Any, message: str = "Operation completed successfully") -> "OperationResult":
        """Create a SUCCESS result."""
        return cls(status=ResultStatus.SUCCESS, value=value, message=message)

    @classmethod
    def warning(cls, value: Any, message: str, warnings: List[str] = None,
                failed_items: List[Any] = None) -> "OperationResult":
        """Create a WARNING result for partial success."""
        return cls(
            status=ResultStatus.WARNING,
            value=value,
            message=message,
            warnings=warnings or [],
            failed_items=failed_items or []
        )

    @classmethod
    def empty(cls, message: str = "Nothing to do", reason: str = None) -> "OperationResult":
        """
        Create an EMPTY result for valid operations with no output.

        This is NOT an error - e.g. a rebuild when every cache is valid.
        """
        details = {}
        if reason:
            details["reason"] = reason
        return cls(status=ResultStatus.EMPTY, value=None, message=message, details=details)

    @classmethod
    def error(cls, message: str, exception: Exception = None,
              context: Dict[str, Any] = None) -> "OperationResult":
        """Create an ERROR result for failed operations."""
        details = context or {}
        if exception:
            details["exception_type"] = type(exception).__name__
            details["exception_message"] = str(exception)
        return cls(status=ResultStatus.ERROR, value=None, message=message, details=details)

    # --- Properties ---

    @property
    def is_success(self) -> bool:
        """True if operation completed successfully (SUCCESS or WARNING with value)."""
        return self.status == ResultStatus.SUCCESS or (
            self.status == ResultStatus.WARNING and self.value is not None
        )

    @property
    def is_error(self) -> bool:
        return self.status == ResultStatus.ERROR

    @property
    def is_empty(self) -> bool:
        return self.status == ResultStatus.EMPTY

    @property
    def has_warnings(self) -> bool:
        return self.status == ResultStatus.WARNING or len(self.warnings) > 0

    @property
    def has_failed_items(self) -> bool:
        return len(self.failed_items) > 0

    # --- Logging Integration ---

    def log(self, context: str = "") -> "OperationResult":
        """
        Log the result with appropriate log level.

        Returns:
            self for chaining
        """
        prefix = f"[{context}] " if context else ""

        if self.status == ResultStatus.SUCCESS:
            logger.success(f"{prefix}{self.message}")

        elif self.status == ResultStatus.WARNING:
            logger.warning(f"{prefix}{self.message}")
            for warn in self.warnings:
                logger.warning(f"{prefix}  - {warn}")
            if self.failed_items:
                logger.warning(f"{prefix}  Failed items: {len(self.failed_items)}")

        elif self.status == ResultStatus.EMPTY:
            logger.info(f"{prefix}{self.message}")
            if "reason" in self.details:
                logger.debug(f"{prefix}  Reason: {self.details['reason']}")

        elif self.status == ResultStatus.ERROR:
            logger.error(f"{prefix}{self.message}")
            if "exception_type" in self.details:
                logger.error(f"{prefix}  Exception: {self.details['exception_type']}: {self.details.get('exception_message', '')}")

        return self

    # --- Report Generation ---

    def to_report_dict(self) -> Dict[str, Any]:
        """Dictionary suitable for host-side reports and logs."""
        report = {
            "status": self.status.name,
            "message": self.message,
        }
        if self.details:
            report["details"] = self.details
        if self.warnings:
            report["warnings"] = self.warnings
        if self.failed_items:
            report["failed_count"] = len(self.failed_items)
        if self.value is not None:
            report["value_type"] = type(self.value).__name__
        return report

    def __repr__(self) -> str:
        parts = [f"{type(self).__name__}({self.status.name}"]
        if self.message:
            parts.append(f", message='{self.message[:50]}'")
        if self.has_warnings:
            parts.append(f", warnings={len(self.warnings)}")
        if self.has_failed_items:
            parts.append(f", failed={len(self.failed_items)}")
        parts.append(")")
        return "".join(parts)


# --- Specialized Result Types ---

@dataclass
class RemovalResult(OperationResult):
    """
    Result of FeatureHistory.remove.

    removed_ids is in removal order: dependents deepest-first, the
    requested feature last.
    """
    feature_id: str = ""
    removed_ids: List[str] = field(default_factory=list)
    cascade: bool = False

    @property
    def is_batch(self) -> bool:
        """True when more than the requested feature was removed."""
        return len(self.removed_ids) > 1

    @classmethod
    def from_removal(cls, feature_id: str, removed_ids: List[str],
                     cascade: bool = False) -> "RemovalResult":
        if len(removed_ids) > 1:
            message = f"Removed '{feature_id}' and {len(removed_ids) - 1} dependent feature(s)"
        else:
            message = f"Removed '{feature_id}'"
        return cls(
            status=ResultStatus.SUCCESS,
            value=list(removed_ids),
            message=message,
            feature_id=feature_id,
            removed_ids=list(removed_ids),
            cascade=cascade,
        )

    def to_report_dict(self) -> Dict[str, Any]:
        report = super().to_report_dict()
        report.update({
            "feature_id": self.feature_id,
            "removed_ids": self.removed_ids,
            "cascade": self.cascade,
        })
        return report


@dataclass
class RebuildResult(OperationResult):
    """
    Result of CodeManager.rebuild.

    failed_items holds the ids whose own evaluation failed; skipped_ids the
    ids not evaluated due to ancestor failure.
    """
    evaluated_ids: List[str] = field(default_factory=list)
    skipped_ids: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_rebuild(cls, evaluated_ids: List[str], failed_ids: List[str],
                     skipped_ids: List[str], errors: Optional[Dict[str, str]] = None) -> "RebuildResult":
        if not evaluated_ids and not failed_ids and not skipped_ids:
            status = ResultStatus.EMPTY
            message = "All feature results are up to date"
        elif failed_ids:
            status = ResultStatus.WARNING
            message = (f"{len(evaluated_ids)} evaluated, {len(failed_ids)} failed, "
                       f"{len(skipped_ids)} skipped due to ancestor failure")
        else:
            status = ResultStatus.SUCCESS
            message = f"{len(evaluated_ids)} feature(s) evaluated"

        return cls(
            status=status,
            value=list(evaluated_ids) if evaluated_ids else None,
            message=message,
            warnings=[f"{fid}: {msg}" for fid, msg in (errors or {}).items()],
            failed_items=list(failed_ids),
            evaluated_ids=list(evaluated_ids),
            skipped_ids=list(skipped_ids),
            errors=dict(errors or {}),
        )

    def to_report_dict(self) -> Dict[str, Any]:
        report = super().to_report_dict()
        report.update({
            "evaluated": len(self.evaluated_ids),
            "failed_ids": list(self.failed_items),
            "skipped_ids": self.skipped_ids,
        })
        return report
