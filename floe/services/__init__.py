"""Service modules"""
from .market import ActionResult, MarketService
from .reconciler import CycleResult, CycleState, ReconciliationStats, Reconciler

__all__ = [
    "ActionResult",
    "MarketService",
    "CycleResult",
    "CycleState",
    "ReconciliationStats",
    "Reconciler",
]
