# metadata.py
"""Project id and region lookups against the GCE metadata server.

Values are read once per process and cached; concurrent first callers of
a key block on that key's lock so the server is queried at most once per key.
"""
import logging
import threading
from typing import Dict, Optional

import httpx

from errors import MetadataError

logger = logging.getLogger(__name__)

METADATA_URL = "http://metadata.google.internal/computeMetadata/v1/"
METADATA_HEADERS = {"Metadata-Flavor": "Google"}
METADATA_TIMEOUT = 5.0

_cache: Dict[str, str] = {}
# per-key fetch locks; _lock only guards this mapping
_key_locks: Dict[str, threading.Lock] = {}
_lock = threading.Lock()


def _fetch(path: str, client: Optional[httpx.Client] = None) -> str:
    try:
        if client is None:
            with httpx.Client(timeout=METADATA_TIMEOUT, trust_env=False) as c:
                resp = c.get(METADATA_URL + path, headers=METADATA_HEADERS)
        else:
            resp = client.get(METADATA_URL + path, headers=METADATA_HEADERS)
    except httpx.RequestError as e:
        raise MetadataError(f"metadata request {path!r} failed: {e}") from e
    if resp.status_code != 200:
        raise MetadataError(f"metadata request {path!r} returned {resp.status_code}")
    value = resp.text.strip()
    if not value:
        raise MetadataError(f"metadata request {path!r} returned an empty value")
    return value


def _key_lock(key: str) -> threading.Lock:
    with _lock:
        return _key_locks.setdefault(key, threading.Lock())


def _cached(key: str, path: str, client: Optional[httpx.Client]) -> str:
    with _key_lock(key):
        if key not in _cache:
            _cache[key] = _fetch(path, client)
            logger.debug("metadata value cached", extra={"key": key})
        return _cache[key]


def project_id(client: Optional[httpx.Client] = None) -> str:
    return _cached("project_id", "project/project-id", client)


def region(client: Optional[httpx.Client] = None) -> str:
    # the server returns projects/<number>/regions/<region>
    value = _cached("region", "instance/region", client)
    return value.rsplit("/", 1)[-1]


def reset_cache() -> None:
    with _lock:
        _cache.clear()
