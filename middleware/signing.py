"""
Cookie value signing.

Signed values have the form ``<value>.<signature>`` where the signature is
an unpadded url-safe base64 HMAC-SHA256 of the value keyed by the secret.
Url-safe characters keep the cookie value unquoted on the wire.
"""

import base64
import hashlib
import hmac
from typing import Literal, Union


def _signature(value: str, secret: str) -> str:
    digest = hmac.new(secret.encode(), value.encode(), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).decode().rstrip("=")


def sign(value: str, secret: str) -> str:
    """
    Sign a cookie value with the given secret.

    Args:
        value: The raw value to sign
        secret: The signing secret

    Returns:
        The signed value ``<value>.<signature>``
    """
    if not isinstance(value, str):
        raise TypeError("Cookie value must be provided as a string.")
    if not isinstance(secret, str) or not secret:
        raise TypeError("Secret string must be provided.")
    return f"{value}.{_signature(value, secret)}"


def unsign(signed_value: str, secret: str) -> Union[str, Literal[False]]:
    """
    Verify a signed cookie value and return the raw value.

    Args:
        signed_value: A value previously produced by sign()
        secret: The signing secret

    Returns:
        The raw value, or False if the value is malformed or the signature
        does not match.
    """
    if not isinstance(signed_value, str) or not isinstance(secret, str) or not secret:
        return False

    value, separator, _ = signed_value.rpartition(".")
    if not separator:
        return False

    expected = sign(value, secret)
    if hmac.compare_digest(expected.encode(), signed_value.encode()):
        return value
    return False
