from .inventory import InventoryReconciler, ReconciliationError, ReconciliationOutcome

__all__ = [
    "InventoryReconciler",
    "ReconciliationError",
    "ReconciliationOutcome",
]
