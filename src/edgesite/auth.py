from __future__ import annotations

import base64
import binascii
import hmac
import re
import unicodedata
from dataclasses import dataclass
from typing import Final, Literal

from starlette.requests import Request

from edgesite.config import BasicAccount

AUTHORIZATION_HEADER: Final[str] = "Authorization"
BASIC_CHALLENGE: Final[str] = 'Basic realm="my scope", charset="UTF-8"'

# RFC 5234 CTL = %x00-1F / %x7F
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


@dataclass(frozen=True)
class Credentials:
    user: str
    password: str


@dataclass(frozen=True)
class AuthFailure:
    kind: Literal["bad_request", "unauthorized"]
    reason: str

    @property
    def status(self) -> int:
        return 400 if self.kind == "bad_request" else 401

    @classmethod
    def bad_request(cls, reason: str) -> AuthFailure:
        return cls(kind="bad_request", reason=reason)

    @classmethod
    def unauthorized(cls, reason: str) -> AuthFailure:
        return cls(kind="unauthorized", reason=reason)


def parse_basic_authorization(value: str) -> Credentials | AuthFailure:
    """Parse an HTTP Basic Authorization value into credentials.

    The decoded text is NFC-normalized (RFC 7613) and split at its first colon, so
    passwords may contain colons but usernames may not.
    """

    scheme, _, encoded = value.partition(" ")
    if not encoded or scheme != "Basic":
        return AuthFailure.bad_request("Malformed authorization header")

    try:
        # Unpadded payloads are accepted.
        padded = encoded + "=" * (-len(encoded) % 4)
        raw = base64.b64decode(padded, validate=True)
        decoded = unicodedata.normalize("NFC", raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError):
        return AuthFailure.bad_request("Invalid authorization value")

    user, sep, password = decoded.partition(":")
    if not sep or _CONTROL_CHARS.search(decoded):
        return AuthFailure.bad_request("Invalid authorization value")

    return Credentials(user=user, password=password)


def _equal(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def verify_credentials(credentials: Credentials, account: BasicAccount) -> AuthFailure | None:
    if not _equal(credentials.user, account.user):
        return AuthFailure.unauthorized("Invalid username")
    if not _equal(credentials.password, account.password):
        return AuthFailure.unauthorized("Invalid password")
    return None


def authenticate_request(
    request: Request, account: BasicAccount
) -> Credentials | AuthFailure | None:
    """Check a request against the static account.

    Returns None when no Authorization header was sent at all, so the caller can issue a
    challenge; otherwise the verified credentials or the reason they were rejected.
    """

    header = request.headers.get(AUTHORIZATION_HEADER)
    if header is None:
        return None

    parsed = parse_basic_authorization(header)
    if isinstance(parsed, AuthFailure):
        return parsed

    failure = verify_credentials(parsed, account)
    if failure is not None:
        return failure
    return parsed
