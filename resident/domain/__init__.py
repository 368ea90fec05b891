"""Domain package exports for value objects and ports."""

from .envelope import MultipartBody, RequestDescriptor, ResponseEnvelope
from .errors import UseCaseError
from .notifications import Notification, NotificationSnapshot, SyncResult
from .routing import DEFAULT_ROUTES, CredentialScope, RouteTable

__all__ = [
    "CredentialScope",
    "DEFAULT_ROUTES",
    "MultipartBody",
    "Notification",
    "NotificationSnapshot",
    "RequestDescriptor",
    "ResponseEnvelope",
    "RouteTable",
    "SyncResult",
    "UseCaseError",
]
