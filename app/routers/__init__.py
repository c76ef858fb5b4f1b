# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - locations.py: Location create/read/update/delete endpoints
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import locations

__all__ = [
    "health",
    "locations",
]
