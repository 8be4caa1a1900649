"""Waiting layer — conditions and the registry that resolves them."""

from recount.waiting.conditions import (
    Condition,
    ExactCount,
    MinimumCount,
    PhaseReached,
    Predicate,
    SinceMark,
)
from recount.waiting.registry import StabilizationResult, WaiterRegistry, WaitResult

__all__ = [
    "Condition",
    "ExactCount",
    "MinimumCount",
    "PhaseReached",
    "Predicate",
    "SinceMark",
    "StabilizationResult",
    "WaitResult",
    "WaiterRegistry",
]
