"""URL resolution and artifact naming for page paths."""

from __future__ import annotations

import hashlib
import re

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.-]+")
_PLAIN_PATH = re.compile(r"[A-Za-z0-9.-]+(/[A-Za-z0-9.-]+)*")


def resolve_url(base_url: str, page_path: str) -> str:
    """Join a base URL and a page path with exactly one slash between them."""
    base = base_url.rstrip("/")
    path = page_path.lstrip("/")
    return f"{base}/{path}" if path else f"{base}/"


def artifact_name(page_path: str) -> str:
    """Derive a flat, deterministic PNG filename from a page path.

    ``/`` and the empty path map to ``home.png``. Plain paths have their
    separators flattened, so ``/events/2024`` becomes ``events_2024.png``.
    Any other path (underscores, query strings, trailing slashes, ``/home``)
    gets a ``__`` suffix with a short hash of the path, so two paths that
    resolve to different URLs never share a file.
    """
    path = page_path.lstrip("/")
    if not path:
        return "home.png"
    if _PLAIN_PATH.fullmatch(path) and path != "home":
        return f"{path.replace('/', '_')}.png"
    flat = _UNSAFE_CHARS.sub("_", path).strip("_") or "page"
    digest = hashlib.sha1(path.encode("utf-8")).hexdigest()[:8]
    return f"{flat}__{digest}.png"
