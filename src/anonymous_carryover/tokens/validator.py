# ABOUTME: Structural and temporal validation of opaque anonymous session tokens.
# ABOUTME: Tokens look like {43-char base64url}-{base36 mint ms}-{8 hex integrity}.

import base64
import hashlib
import logging
import re
import secrets
from dataclasses import dataclass

from anonymous_carryover.config import Settings

logger = logging.getLogger(__name__)

INTEGRITY_PART_LENGTH = 8

_RANDOM_PART_RE = re.compile(r"[A-Za-z0-9_]{43}")
_TIMESTAMP_PART_RE = re.compile(r"[0-9a-zA-Z]{1,16}")
_INTEGRITY_PART_RE = re.compile(r"[0-9a-fA-F]{8}")


@dataclass(frozen=True)
class TokenParts:
    """The three segments of a well-formed session token."""

    random_part: str
    minted_at: int
    integrity: str


def parse_token(token: str) -> TokenParts | None:
    """Split a token into its parts without checking its age.

    The random part is URL-safe base64, but a dash would make the
    three-segment split ambiguous, so dashes are never accepted there.

    Args:
        token: The raw token string.

    Returns:
        TokenParts if the token is structurally valid, None otherwise.
    """
    if not isinstance(token, str):
        return None

    parts = token.split("-")
    if len(parts) != 3:
        return None

    random_part, timestamp_part, integrity_part = parts

    if not _RANDOM_PART_RE.fullmatch(random_part):
        return None
    if not _TIMESTAMP_PART_RE.fullmatch(timestamp_part):
        return None
    if not _INTEGRITY_PART_RE.fullmatch(integrity_part):
        return None

    minted_at = int(timestamp_part, 36)
    if minted_at <= 0:
        return None

    return TokenParts(random_part=random_part, minted_at=minted_at, integrity=integrity_part)


def _integrity_digest(random_part: str, timestamp_part: str) -> str:
    payload = f"{random_part}-{timestamp_part}".encode()
    return hashlib.sha256(payload).hexdigest()[:INTEGRITY_PART_LENGTH]


def to_base36(value: int) -> str:
    """Encode a non-negative integer in lowercase base 36."""
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


def mint_session_token(now: int) -> str:
    """Create a fresh, well-formed session token minted at ``now``.

    Args:
        now: Mint time in epoch milliseconds.

    Returns:
        A token that TokenValidator accepts for the next seven days.
    """
    while True:
        raw = base64.urlsafe_b64encode(secrets.token_bytes(32)).rstrip(b"=").decode("ascii")
        if "-" not in raw:
            break
    timestamp_part = to_base36(now)
    return f"{raw}-{timestamp_part}-{_integrity_digest(raw, timestamp_part)}"


class TokenValidator:
    """Gatekeeper for session tokens supplied by untrusted clients.

    A token is accepted when it parses and its mint time lies within the
    clock-skew window: at most one minute in the future, at most seven days
    in the past. Boundaries are inclusive.
    """

    def __init__(self, settings: Settings) -> None:
        self._future_skew_ms = settings.future_skew_ms
        self._max_age_ms = settings.token_max_age_ms

    def validate(self, token: str, now: int) -> bool:
        """Check that a token is well formed and was minted recently.

        Never raises; any malformed input yields False.

        Args:
            token: The raw token string.
            now: Current time in epoch milliseconds.

        Returns:
            True if the token is acceptable, False otherwise.
        """
        parts = parse_token(token)
        if parts is None:
            logger.info("Rejected malformed session token")
            return False

        age = now - parts.minted_at
        if age < -self._future_skew_ms or age > self._max_age_ms:
            logger.info("Rejected session token minted %d ms from now", -age)
            return False

        return True
