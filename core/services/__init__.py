# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .location_service import LocationCoordinator, LocationRepository
from .reconciliation_service import OrphanSweeper, SweepReport

__all__ = [
    "LocationCoordinator",
    "LocationRepository",
    "OrphanSweeper",
    "SweepReport",
]
