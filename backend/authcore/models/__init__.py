from authcore.models.auth_token import AuthToken
from authcore.models.base import Audit, new_audit, touch_audit
from authcore.models.identity import User

__all__ = [
    "Audit",
    "AuthToken",
    "User",
    "new_audit",
    "touch_audit",
]
