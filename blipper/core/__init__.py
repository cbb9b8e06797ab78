"""Core sync functionality."""

from .auth import TokenStore
from .client import GitHubClient
from .encoder import EncodedAsset, resize_and_strip_metadata
from .engine import ContentSyncEngine, InvalidTransitionError
from .transport import ApiResult, BlipperAPIError, ErrorKind, HttpTransport

__all__ = [
    "ApiResult",
    "BlipperAPIError",
    "ContentSyncEngine",
    "EncodedAsset",
    "ErrorKind",
    "GitHubClient",
    "HttpTransport",
    "InvalidTransitionError",
    "TokenStore",
    "resize_and_strip_metadata",
]
