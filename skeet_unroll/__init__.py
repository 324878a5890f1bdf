from __future__ import annotations

from .cache import ThreadCache
from .config import config_sha256, load_config
from .config_schema import AppConfig
from .errors import ConfigError, FeedError, StorageError
from .post import ErrorResult, FacetLink, NormalizedPost, ThreadResult
from .thread import extract_replies, reconstruct_thread
from .unroll import ThreadUnroller

__all__ = [
    "AppConfig",
    "ConfigError",
    "ErrorResult",
    "FacetLink",
    "FeedError",
    "NormalizedPost",
    "StorageError",
    "ThreadCache",
    "ThreadResult",
    "ThreadUnroller",
    "config_sha256",
    "extract_replies",
    "load_config",
    "reconstruct_thread",
]
