"""
Per-request session.

A Session owns one request's session lifecycle: identifier resolution from
the signed cookie, lazy loading through the engine's ``read`` operation,
mutation tracking, and the end-of-request closure that writes the cookie
and persists or touches the stored record exactly once.
"""

import logging
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Optional, Union

from errors.exceptions import (
    InvalidArgumentError,
    SessionNotStartedError,
)

if TYPE_CHECKING:
    from middleware.http_adapter import SessionRequest, SessionResponse
    from session.engine import SessionEngine

logger = logging.getLogger(__name__)

# Reserved data key holding a per-session duration override in milliseconds
DURATION_KEY = "__cust_dur"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class Session:
    """
    Session state for a single request.

    Instances are created by the SessionEngine middleware and attached to
    ``request.state.session``. ``start()`` must be awaited before the data
    accessors are used.
    """

    def __init__(
        self,
        request: "SessionRequest",
        response: "SessionResponse",
        session_engine: "SessionEngine",
    ):
        self._request = request
        self._response = response
        self._session_engine = session_engine

        self._id: Optional[str] = None
        self._signed_id: Optional[str] = None
        self._data: dict[str, Any] = {}

        # State flags
        self._parsed_id = False
        self._ready = False
        self._from_database = False
        self._persist = False
        self._destroyed = False
        self._finalized = False

        # Closure runs when the response is sent
        response.hook("send", self.finalize)

    async def generate_id(self) -> str:
        """Generate a new session id through the engine's ``id`` operation."""
        return await self._session_engine.invoke("id")

    def set_id(self, session_id: str) -> "Session":
        """
        Set the raw session id without any verification.

        Only use this with trusted values; prefer set_signed_id() for input
        coming from a client.

        Raises:
            InvalidArgumentError: If session_id is not a string
        """
        if not isinstance(session_id, str):
            raise InvalidArgumentError("set_id(id) -> id must be a string")
        self._id = session_id
        self._signed_id = None
        self._parsed_id = True
        return self

    def set_signed_id(self, signed_id: str, secret: Optional[str] = None) -> bool:
        """
        Set the session id from a signed value after verifying it.

        Args:
            signed_id: Signed session id
            secret: Optional secret, defaults to the engine's cookie secret

        Returns:
            True if the signature was valid and the id was set, False otherwise
        """
        final_secret = secret or self._session_engine.options.cookie.secret
        unsigned_id = self._request.unsign(signed_id, final_secret)
        if unsigned_id is False:
            return False

        self._id = unsigned_id
        self._signed_id = signed_id
        self._parsed_id = True
        return True

    def set_duration(self, duration: Union[int, float]) -> "Session":
        """
        Override the lifetime of this session only.

        Args:
            duration: Lifetime in milliseconds

        Raises:
            InvalidArgumentError: If duration is not a positive number
        """
        if not _is_number(duration) or duration < 1:
            raise InvalidArgumentError(
                "SessionEngine: Session.set_duration(duration) -> duration must be "
                "a valid number in milliseconds."
            )
        return self.set(DURATION_KEY, duration)

    async def start(self) -> None:
        """
        Resolve the session id and load its data.

        A request without a valid session cookie gets a freshly generated id
        and skips the ``read`` operation. Calling start() again is a no-op.
        """
        if self._ready:
            return

        session_id = self.id
        if not isinstance(session_id, str) or len(session_id) == 0:
            self._id = await self.generate_id()
            self._parsed_id = True
            self._from_database = False
            self._ready = True
            logger.debug("New session started")
            return

        session_data = await self._session_engine.invoke("read", self)
        if isinstance(session_data, Mapping):
            self._from_database = True
            self._data = dict(session_data)
        else:
            self._from_database = False

        self._ready = True
        logger.debug(
            "Session started",
            extra={"extra_data": {"stored": self._from_database}},
        )

    def _session_not_started(self, method: str):
        raise SessionNotStartedError(method)

    async def roll(self) -> bool:
        """
        Move the session to a new id, keeping its data.

        The old stored record is destroyed first. The data is written under
        the new id when the request closes.
        """
        if not self._ready:
            return self._session_not_started("roll")

        data = self._data
        if self._from_database:
            await self.destroy()

        self._id = await self.generate_id()
        self._signed_id = None
        self._parsed_id = True
        self._data = data
        self._destroyed = False
        self._from_database = False
        self._persist = True
        logger.debug("Session rolled to a new id")
        return True

    async def touch(self) -> None:
        """Refresh the stored record's expiry through the ``touch`` operation."""
        if not isinstance(self.id, str):
            return
        await self._session_engine.invoke("touch", self)

    async def destroy(self) -> None:
        """
        Destroy the session.

        Deletes the stored record (starting the session first if needed),
        clears local data and makes the closure delete the cookie.
        """
        if self._destroyed:
            return

        if not isinstance(self.id, str):
            return

        if not self._ready:
            await self.start()

        if self._from_database:
            await self._session_engine.invoke("destroy", self)

        self._data = {}
        self._destroyed = True
        logger.debug("Session destroyed")

    def set(self, name: Union[str, Mapping[str, Any]], value: Any = None) -> "Session":
        """
        Set one value, or merge a mapping of values into the session data.

        Args:
            name: Key to set, or a mapping of keys to values
            value: Value for a single key

        Returns:
            Session (chainable)
        """
        if not self._ready:
            return self._session_not_started("set")

        if isinstance(name, str):
            self._data[name] = value
        elif isinstance(name, Mapping):
            self._data.update(name)
        else:
            raise InvalidArgumentError("Session.set(name, value) -> name must be a string or a mapping")

        self._persist = True
        return self

    def reset(self, data: Optional[Mapping[str, Any]] = None) -> "Session":
        """Replace all session data with ``data``."""
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise InvalidArgumentError("SessionEngine: Session.reset(data) -> data must be an Object.")

        if not self._ready:
            return self._session_not_started("reset")

        self._data = dict(data)
        self._persist = True
        return self

    def get(self, name: Optional[str] = None) -> Any:
        """
        Return one value, or all session data when no name is given.

        Missing keys return None.
        """
        if not self._ready:
            return self._session_not_started("get")

        if name is None:
            return self._data
        return self._data.get(name)

    def delete(self, name: Optional[str] = None) -> "Session":
        """Delete one value, or all session data when no name is given."""
        if not self._ready:
            return self._session_not_started("delete")

        if name is None:
            self._data = {}
        else:
            self._data.pop(name, None)

        self._persist = True
        return self

    async def finalize(self) -> None:
        """
        End-of-request closure.

        Writes or deletes the session cookie, then touches or writes the
        stored record. Backend failures are handed to the response's error
        channel instead of being raised. Runs at most once; later calls
        are ignored.
        """
        if self._finalized:
            logger.debug("Session closure already performed, skipping")
            return
        self._finalized = True

        cookie = self._session_engine.options.cookie
        if self._destroyed:
            self._response.delete_cookie(cookie.name, cookie)
        elif isinstance(self._signed_id, str):
            # Already signed, skip re-signing
            self._response.cookie(cookie.name, self._signed_id, self.duration, cookie, False)
        elif isinstance(self._id, str):
            self._response.cookie(cookie.name, self._id, self.duration, cookie)

        if self._destroyed:
            return

        try:
            automatic_touch = self._session_engine.options.automatic_touch
            if self._from_database and automatic_touch is True:
                await self.touch()
            elif self._persist:
                await self._session_engine.invoke("write", self)
        except Exception as error:
            self._response.throw_error(error)

    @property
    def id(self) -> Optional[str]:
        """Session id parsed from the request cookie, resolved once."""
        if self._parsed_id:
            return self._id

        cookie_options = self._session_engine.options.cookie
        signed_cookie_id = self._request.cookies.get(cookie_options.name)
        if signed_cookie_id:
            unsigned_value = self._request.unsign(signed_cookie_id, cookie_options.secret)
            if unsigned_value is not False:
                self._id = unsigned_value
                self._signed_id = signed_cookie_id
            else:
                logger.debug("Session cookie failed signature verification")

        self._parsed_id = True
        return self._id

    @property
    def signed_id(self) -> Optional[str]:
        """Signed form of the session id, computed once and cached."""
        if self._signed_id:
            return self._signed_id

        session_id = self.id
        if session_id:
            secret = self._session_engine.options.cookie.secret
            self._signed_id = self._request.sign(session_id, secret)
        return self._signed_id

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def stored(self) -> bool:
        """Whether the data was loaded from storage (UPDATE rather than INSERT)."""
        return self._from_database

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def duration(self) -> Union[int, float]:
        """Session lifetime in milliseconds."""
        custom_duration = self._data.get(DURATION_KEY)
        if _is_number(custom_duration):
            return custom_duration
        return self._session_engine.options.duration

    @property
    def expires_at(self) -> int:
        """Expiry as a unix timestamp in milliseconds."""
        return int(time.time() * 1000 + self.duration)
