"""Caller identity -- Firebase verification and the uid -> Contact Id cache."""

from src.tat_api.identity.cache import (
    CacheBackend,
    IdentityCache,
    JsonFileCacheBackend,
    SqliteCacheBackend,
    build_cache_backend,
)
from src.tat_api.identity.firebase import FirebaseVerifier
from src.tat_api.identity.resolver import ContactResolver

__all__ = [
    "CacheBackend",
    "ContactResolver",
    "FirebaseVerifier",
    "IdentityCache",
    "JsonFileCacheBackend",
    "SqliteCacheBackend",
    "build_cache_backend",
]
