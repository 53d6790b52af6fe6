"""
Owner-scoped caching helpers.

Keys carry a per-owner version number; invalidating an owner's entries bumps
the version instead of deleting keys, which works on Redis and on the local
memory backend alike.
"""
import hashlib
import logging
import time

from django.core.cache import cache

logger = logging.getLogger(__name__)


def make_cache_key(prefix, *args, **kwargs):
    """Generate a stable cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def _version_key(prefix, owner_id):
    return f"{prefix}:version:{owner_id}"


def _fresh_version():
    # Never reuses a version an evicted key may have held
    return time.time_ns()


def get_owner_version(prefix, owner_id):
    version = cache.get(_version_key(prefix, owner_id))
    if version is None:
        version = _fresh_version()
        cache.set(_version_key(prefix, owner_id), version, None)
    return version


def owner_cache_key(prefix, owner_id, **params):
    """Cache key for one owner's query, including the owner's current version"""
    version = get_owner_version(prefix, owner_id)
    return make_cache_key(prefix, owner_id, version, **params)


def invalidate_owner(prefix, owner_id):
    """Make every cached entry under ``prefix`` for this owner stale"""
    key = _version_key(prefix, owner_id)
    try:
        cache.incr(key)
    except ValueError:
        # Version key missing or evicted
        cache.set(key, _fresh_version(), None)
    logger.debug("Invalidated %s cache for owner %s", prefix, owner_id)
