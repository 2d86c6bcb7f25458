"""
Backend operation interface for session storage.

This module defines the contract between the session core and a storage
backend (database, cache, ...). The core never knows storage details: it
only calls the six operations below. A backend either subclasses
SessionStore and passes the instance to SessionEngine, or registers
individual handlers with SessionEngine.use().

Every operation except ``id`` fails with OperationNotConfiguredError until
a backend provides it.
"""

import secrets
from typing import TYPE_CHECKING, Any, Optional

from errors.exceptions import OperationNotConfiguredError

if TYPE_CHECKING:
    from session.session import Session


# Operation names accepted by SessionEngine.use()
OPERATIONS = ("id", "read", "write", "touch", "destroy", "cleanup")

# 24 random bytes encode to a 32 character url-safe identifier
SESSION_ID_BYTES = 24


class SessionStore:
    """
    Base class for session storage backends.

    All methods are async to support non-blocking I/O with external
    storage systems. Subclasses override the operations they support.
    """

    async def id(self) -> str:
        """
        Generate a fresh, unpredictable session identifier.

        Returns:
            A cryptographically secure random url-safe string.
        """
        return secrets.token_urlsafe(SESSION_ID_BYTES)

    async def read(self, session: "Session") -> Optional[dict[str, Any]]:
        """
        Retrieve stored data for ``session.id``.

        Returns:
            The stored data dictionary, or None if the session does not
            exist or has expired.
        """
        raise OperationNotConfiguredError("read")

    async def write(self, session: "Session") -> None:
        """
        Persist ``session.get()`` under ``session.id``.

        ``session.stored`` tells whether the record already exists, which
        lets SQL backends choose between INSERT and UPDATE. The record
        should expire at ``session.expires_at``.
        """
        raise OperationNotConfiguredError("write")

    async def touch(self, session: "Session") -> None:
        """Extend the expiry of the stored record without rewriting its data."""
        raise OperationNotConfiguredError("touch")

    async def destroy(self, session: "Session") -> None:
        """
        Delete the stored record for ``session.id``.

        This operation should be idempotent.
        """
        raise OperationNotConfiguredError("destroy")

    async def cleanup(self) -> None:
        """Remove expired records. Driven by an external scheduler."""
        raise OperationNotConfiguredError("cleanup")
