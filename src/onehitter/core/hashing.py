"""Keyed hashing of codes and contacts.

With a pepper configured, digests are HMAC-SHA256 keyed by the pepper. Without
one they fall back to plain SHA-256, which is refused in production unless the
insecure override is set. The check runs on every call, never at import time.
"""

from __future__ import annotations

import hashlib
import hmac

from onehitter.config import OneHitterConfig
from onehitter.errors import ConfigurationError

_CONTACT_DOMAIN = "contact"


class Hasher:
    """Computes ``code_hash`` and ``contact_id`` values for storage."""

    def __init__(
        self,
        pepper: str | None = None,
        *,
        production: bool = False,
        allow_insecure: bool = False,
    ) -> None:
        self._pepper = pepper or None
        self._production = production
        self._allow_insecure = allow_insecure

    @classmethod
    def from_config(cls, config: OneHitterConfig) -> Hasher:
        return cls(
            config.pepper,
            production=config.production,
            allow_insecure=config.allow_insecure_hash,
        )

    @property
    def keyed(self) -> bool:
        return self._pepper is not None

    def hash_code(self, contact: str, code: str, salt: str | None = None) -> str:
        """Digest of ``contact|code`` (or ``contact|code|salt``)."""
        message = f"{contact}|{code}" if salt is None else f"{contact}|{code}|{salt}"
        return self._digest(message)

    def hash_contact(self, contact: str) -> str:
        """Pseudonymous identifier for a contact, used as the storage key."""
        return self._digest(f"{_CONTACT_DOMAIN}|{contact}")

    def _digest(self, message: str) -> str:
        data = message.encode("utf-8")
        if self._pepper is not None:
            return hmac.new(self._pepper.encode("utf-8"), data, hashlib.sha256).hexdigest()
        if self._production and not self._allow_insecure:
            raise ConfigurationError(
                "OTP pepper must be set in production. Configure a pepper or "
                "explicitly allow insecure hashing.",
                code="pepper_required",
            )
        return hashlib.sha256(data).hexdigest()
