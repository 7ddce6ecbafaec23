"""Ed25519 signature verification for inbound webhook requests.

The sender signs ``timestamp + raw body`` and sends the hex signature and
the timestamp in the ``X-Signature-Ed25519`` and ``X-Signature-Timestamp``
headers.  :func:`verify` checks that signature against the sender's public
key and classifies every failure as a :class:`DenialReason` instead of
raising.

The request body is read at most once.  Whenever it is read, the request
gets a fresh stream with the same bytes so later consumers still see the
full, unconsumed body.
"""

from __future__ import annotations

import base64
import binascii
import enum
import io
import logging
import shutil
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, BinaryIO

from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

from runtime.shared.constants import (
    HEADER_SIGNATURE,
    HEADER_TIMESTAMP,
    SIGNATURE_CANONICAL_MASK,
    SIGNATURE_SIZE,
)

logger = logging.getLogger(__name__)


class DenialReason(enum.Enum):
    """Why a request was denied."""

    MISSING_SIGNATURE = "missing signature"
    MALFORMED_SIGNATURE = "malformed signature"
    MISSING_TIMESTAMP = "missing timestamp"
    SIGNATURE_MISMATCH = "signature mismatch"
    IO_ERROR = "body could not be read"


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of :func:`verify`: authorized when ``reason`` is ``None``."""

    reason: DenialReason | None = None

    @classmethod
    def allow(cls) -> VerificationOutcome:
        return cls()

    @classmethod
    def deny(cls, reason: DenialReason) -> VerificationOutcome:
        return cls(reason=reason)

    @property
    def authorized(self) -> bool:
        return self.reason is None


@dataclass
class VerificationRequest:
    """Headers, body stream and protected resource of one invocation."""

    headers: Mapping[str, str] = field(default_factory=dict)
    body: BinaryIO = field(default_factory=io.BytesIO)
    resource: str = ""

    @classmethod
    def from_event(cls, event: dict[str, Any]) -> VerificationRequest:
        """Build a request from an API Gateway REQUEST authorizer event."""
        raw_body = event.get("body") or ""
        if event.get("isBase64Encoded"):
            body = base64.b64decode(raw_body)
        else:
            body = raw_body.encode("utf-8")

        return cls(
            headers=event.get("headers") or {},
            body=io.BytesIO(body),
            resource=event.get("methodArn", ""),
        )

    def header(self, name: str) -> str:
        """Return header *name* (case-insensitive), or ``""`` when absent."""
        value = self.headers.get(name)
        if value is None:
            # Headers may be lower-cased by the gateway
            lowered = name.lower()
            for header_name, header_value in self.headers.items():
                if header_name.lower() == lowered:
                    value = header_value
                    break
        return value or ""

    @property
    def signature(self) -> str:
        return self.header(HEADER_SIGNATURE)

    @property
    def timestamp(self) -> str:
        return self.header(HEADER_TIMESTAMP)


def decode_signature(signature: str) -> bytes | None:
    """Hex-decode *signature* and check its Ed25519 shape.

    Returns ``None`` unless the result is exactly 64 bytes with the top
    three bits of the last byte clear.
    """
    try:
        sig = binascii.unhexlify(signature)
    except ValueError:
        return None

    if len(sig) != SIGNATURE_SIZE or sig[-1] & SIGNATURE_CANONICAL_MASK:
        return None
    return sig


@contextmanager
def replayable_body(request: VerificationRequest) -> Iterator[io.BytesIO]:
    """Yield a buffer receiving the body bytes; restore them on exit.

    Whatever was copied into the buffer, even after a failed read, becomes
    the request's new body stream.
    """
    original = request.body
    buffer = io.BytesIO()
    try:
        yield buffer
    finally:
        request.body = io.BytesIO(buffer.getvalue())
        original.close()


def verify(request: VerificationRequest, signing_key: VerifyKey) -> VerificationOutcome:
    """Verify the Ed25519 signature of *request* against *signing_key*."""
    signature = request.signature
    if not signature:
        return VerificationOutcome.deny(DenialReason.MISSING_SIGNATURE)

    sig = decode_signature(signature)
    if sig is None:
        return VerificationOutcome.deny(DenialReason.MALFORMED_SIGNATURE)

    timestamp = request.timestamp
    if not timestamp:
        return VerificationOutcome.deny(DenialReason.MISSING_TIMESTAMP)

    try:
        signed_prefix = timestamp.encode("utf-8")
    except UnicodeEncodeError:
        # Lone surrogates cannot have been signed by the sender
        return VerificationOutcome.deny(DenialReason.MISSING_TIMESTAMP)

    with replayable_body(request) as buffer:
        try:
            shutil.copyfileobj(request.body, buffer)
        except (OSError, ValueError):
            # ValueError: the stream was closed or detached
            logger.exception("Failed to read request body")
            return VerificationOutcome.deny(DenialReason.IO_ERROR)
        message = signed_prefix + buffer.getvalue()

    try:
        signing_key.verify(message, sig)
    except BadSignatureError:
        return VerificationOutcome.deny(DenialReason.SIGNATURE_MISMATCH)
    return VerificationOutcome.allow()
