"""API key resolution and storage.

There is exactly one active credential at a time.  It comes from one of two
places, checked at the start of every attempt:

1. An explicit key, normally the value the user saved through the
   :class:`CredentialStore` (or passed with a single request).
2. The first non-empty variable from an ordered table of environment
   variables (``ENV_KEY_CANDIDATES`` by default).

If neither yields a value the resolved key is ``""`` and callers must stop
with :class:`~santahat.core.errors.MissingCredential` before any network
call is attempted.

Usage Example
-------------
    from santahat.core.credentials import CredentialResolver, CredentialStore

    store = CredentialStore(config.credential_file)
    store.set("AIza...")

    resolver = CredentialResolver(store)
    key = resolver.resolve()
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping, Sequence
from pathlib import Path

logger = logging.getLogger(__name__)

ENV_KEY_CANDIDATES: tuple[str, ...] = ("API_KEY", "VITE_API_KEY", "REACT_APP_API_KEY")

STORAGE_KEY = "gemini_api_key"


def resolve_api_key(
    explicit_key: str | None,
    environ: Mapping[str, str] | None = None,
    candidates: Sequence[str] = ENV_KEY_CANDIDATES,
) -> str:
    """Pick the API key to use for a request.

    Args:
        explicit_key: Key supplied by the user (may be empty or None)
        environ: Environment snapshot to search (default: ``os.environ``)
        candidates: Environment variable names, checked in order

    Returns:
        The explicit key if non-empty after trimming, otherwise the first
        non-empty candidate variable, otherwise ``""``
    """
    if explicit_key and explicit_key.strip():
        return explicit_key.strip()

    if environ is None:
        environ = os.environ

    for name in candidates:
        value = (environ.get(name) or "").strip()
        if value:
            logger.debug(f"Using API key from environment variable {name}")
            return value

    return ""


class CredentialStore:
    """Single persisted API key, kept in a small JSON file.

    An absent file, an unreadable file, or a missing entry all mean "no stored
    credential".  Writing an empty value removes the entry.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable credential file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def get(self) -> str:
        value = self._load().get(STORAGE_KEY, "")
        return value.strip() if isinstance(value, str) else ""

    def set(self, value: str | None) -> None:
        """Store ``value`` as the active key; empty removes the stored key."""
        value = (value or "").strip()
        data = self._load()

        if value:
            data[STORAGE_KEY] = value
        else:
            data.pop(STORAGE_KEY, None)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Keys are secrets: the file is private to the user from creation on.
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

        # A file created by an older version may still be readable by others.
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            logger.debug(f"Could not restrict permissions on {self.path}")

        logger.info("Stored API key updated" if value else "Stored API key cleared")

    def clear(self) -> None:
        self.set("")

    @property
    def has_credential(self) -> bool:
        return bool(self.get())


class CredentialResolver:
    """Resolves the active key from a store and the environment table.

    Attributes:
        store: Where the user's saved key lives (optional)
        candidates: Ordered environment variable names used as fallback
    """

    def __init__(
        self,
        store: CredentialStore | None = None,
        candidates: Sequence[str] = ENV_KEY_CANDIDATES,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.store = store
        self.candidates = tuple(candidates)
        self._environ = environ

    def resolve(self, explicit_key: str | None = None) -> str:
        """Resolve the key for one attempt.

        An ``explicit_key`` passed here takes precedence over the stored one.
        """
        if not (explicit_key and explicit_key.strip()) and self.store is not None:
            explicit_key = self.store.get()
        return resolve_api_key(explicit_key, self._environ, self.candidates)

    def source(self, explicit_key: str | None = None) -> str:
        """Describe where :meth:`resolve` would take the key from.

        Returns:
            One of ``"explicit"``, ``"stored"``, ``"environment"`` or ``"none"``
        """
        if explicit_key and explicit_key.strip():
            return "explicit"
        if self.store is not None and self.store.get():
            return "stored"
        if resolve_api_key(None, self._environ, self.candidates):
            return "environment"
        return "none"
