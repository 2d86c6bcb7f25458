"""
Request/response adapters consumed by the session core.

The session core talks to HTTP through a narrow contract: the request
exposes its cookies plus ``sign``/``unsign``, and the response exposes
``cookie``/``delete_cookie``, a ``send`` hook and an error sink. These
adapters provide that contract on top of Starlette.

SessionResponse records cookie instructions while the ``send`` hooks run
and applies them to the outgoing Starlette response afterwards, so the
last instruction for a cookie name wins.
"""

import inspect
import logging
import math
from typing import Any, Callable, Literal, Optional, Union

from starlette.requests import Request
from starlette.responses import Response

from errors.exceptions import InvalidArgumentError, SessionFinalizedError
from errors.handlers import report_closure_error
from middleware import signing

logger = logging.getLogger(__name__)

SEND_EVENT = "send"


def _same_site(value: Union[bool, str, None]) -> Optional[str]:
    """Map a same_site option onto Starlette's samesite argument."""
    if value is True:
        return "strict"
    if value is False or value is None:
        return None
    return value


class SessionRequest:
    """Read side of the HTTP contract: cookies and signature checks."""

    def __init__(self, request: Request):
        self.request = request

    @property
    def cookies(self) -> dict[str, str]:
        return self.request.cookies

    def sign(self, value: str, secret: str) -> str:
        return signing.sign(value, secret)

    def unsign(self, signed_value: str, secret: str) -> Union[str, Literal[False]]:
        return signing.unsign(signed_value, secret)


class SessionResponse:
    """
    Write side of the HTTP contract.

    Attributes:
        cookies: Pending cookie instructions keyed by cookie name. Each value
            is ``("set", value, max_age, options)`` or ``("delete", options)``.
        sent: Whether the send event has fired
    """

    def __init__(self, error_handler: Optional[Callable[[BaseException], Any]] = None):
        self.cookies: dict[str, tuple] = {}
        self.sent = False
        self._hooks: dict[str, list[Callable[[], Any]]] = {}
        self._error_handler = error_handler or report_closure_error

    def hook(self, event: str, callback: Callable[[], Any]) -> "SessionResponse":
        """
        Register a callback for a response lifecycle event.

        Args:
            event: Event name, e.g. "send"
            callback: Sync or async callable invoked with no arguments

        Returns:
            SessionResponse (chainable)
        """
        if not callable(callback):
            raise InvalidArgumentError("SessionResponse.hook(event, callback) -> callback must be a function.")
        self._hooks.setdefault(event, []).append(callback)
        return self

    def cookie(
        self,
        name: str,
        value: str,
        ttl: int,
        options: Any,
        sign: bool = True,
    ) -> "SessionResponse":
        """
        Queue a cookie to be written on the response.

        Args:
            name: Cookie name
            value: Cookie value, signed with ``options.secret`` unless sign is False
            ttl: Cookie lifetime in milliseconds, rounded up to whole seconds
            options: CookieOptions carrying path, domain and flags
            sign: Whether the value still needs signing

        Returns:
            SessionResponse (chainable)
        """
        if sign:
            value = signing.sign(value, options.secret)
        self.cookies[name] = ("set", value, max(math.ceil(ttl / 1000), 0), options)
        return self

    def delete_cookie(self, name: str, options: Any = None) -> "SessionResponse":
        """Queue removal of a cookie from the client."""
        self.cookies[name] = ("delete", options)
        return self

    def throw_error(self, error: BaseException) -> None:
        """Hand an error raised after the response was produced to the error channel."""
        self._error_handler(error)

    async def send(self, response: Response) -> Response:
        """
        Fire the send event once and apply queued cookies to ``response``.

        Args:
            response: The outgoing Starlette response

        Returns:
            The same response with Set-Cookie headers added

        Raises:
            SessionFinalizedError: If the response was already sent
        """
        if self.sent:
            raise SessionFinalizedError("SessionResponse.send() -> response was already sent")
        self.sent = True

        for callback in self._hooks.get(SEND_EVENT, []):
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.throw_error(e)

        for name, instruction in self.cookies.items():
            if instruction[0] == "delete":
                options = instruction[1]
                response.delete_cookie(
                    name,
                    path=getattr(options, "path", "/"),
                    domain=getattr(options, "domain", None),
                )
                continue

            _, value, max_age, options = instruction
            response.set_cookie(
                name,
                value,
                max_age=max_age,
                path=options.path,
                domain=options.domain,
                secure=options.secure,
                httponly=options.http_only,
                samesite=_same_site(options.same_site),
            )

        logger.debug(
            "Session cookies applied",
            extra={"extra_data": {"cookies": sorted(self.cookies)}},
        )
        return response
