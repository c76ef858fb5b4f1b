# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains framework-agnostic business logic:
# - models/: Pydantic schemas for locations and image references
# - services/: The location lifecycle coordinator and the orphan sweep
#
# Code in this package should NOT import routers, FastAPI or Celery.
# This keeps the logic testable and reusable.
# =============================================================================
