"""
ParaCore - Parametrische Feature-History
Extensions hängen Features an, der CodeManager wertet sie lazy aus.
"""

from parametric.errors import (
    FeatureHistoryError,
    InvalidParentError,
    NotFoundError,
    DependentFeatureError,
    HistoryError,
    UnknownOperationError,
    OperationError,
)
from parametric.features import Feature, FeatureRef
from parametric.feature_history import FeatureHistory
from parametric.geometry import GeometryResult, register_operation, available_operations
from parametric.result_types import OperationResult, ResultStatus, RemovalResult, RebuildResult
from parametric.code_manager import CodeManager

__all__ = [
    "FeatureHistoryError",
    "InvalidParentError",
    "NotFoundError",
    "DependentFeatureError",
    "HistoryError",
    "UnknownOperationError",
    "OperationError",
    "Feature",
    "FeatureRef",
    "FeatureHistory",
    "GeometryResult",
    "register_operation",
    "available_operations",
    "OperationResult",
    "ResultStatus",
    "RemovalResult",
    "RebuildResult",
    "CodeManager",
]
