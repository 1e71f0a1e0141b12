from .racks import RackInformation, calculate_rack_information
from .reconcile_racks import ReconcileRacks, ReconcileResult

__all__ = [
    "RackInformation",
    "calculate_rack_information",
    "ReconcileRacks",
    "ReconcileResult",
]
