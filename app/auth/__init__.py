# =============================================================================
# app/auth/__init__.py - Authentication Module
# =============================================================================
# Authentication is an external collaborator: this module only turns a bearer
# token into an AuthUser. Role-based authorization is not enforced here.
#
# Usage:
#   from app.auth import get_current_user, AuthUser
#
#   @router.post("/locations")
#   def create(user: AuthUser = Depends(get_current_user)):
#       return {"owner_id": user.id}
# =============================================================================

from app.auth.dependencies import get_current_user
from app.auth.models import AuthUser

__all__ = [
    "get_current_user",
    "AuthUser",
]
