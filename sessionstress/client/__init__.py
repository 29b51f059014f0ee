from .client import SessionServiceClient
from .types import DestroyError, Image, ServiceError, SessionStatus, User

__all__ = [
    "SessionServiceClient",
    "SessionStatus",
    "User",
    "Image",
    "ServiceError",
    "DestroyError",
]
