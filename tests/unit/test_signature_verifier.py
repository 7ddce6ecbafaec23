"""Unit tests for runtime.auth.signature."""

from __future__ import annotations

import io

from nacl.signing import SigningKey

from runtime.auth.signature import (
    DenialReason,
    VerificationOutcome,
    VerificationRequest,
    decode_signature,
    replayable_body,
    verify,
)

_TIMESTAMP = "1700000000"
_BODY = b'{"type":1,"id":"123"}'

_SIGNER = SigningKey.generate()
_VERIFY_KEY = _SIGNER.verify_key


def _sign(timestamp: str, body: bytes, signer: SigningKey = _SIGNER) -> str:
    return signer.sign(timestamp.encode() + body).signature.hex()


def _request(
    signature: str | None,
    timestamp: str | None,
    body: bytes = _BODY,
    resource: str = "testARN",
) -> VerificationRequest:
    headers: dict[str, str] = {}
    if signature is not None:
        headers["X-Signature-Ed25519"] = signature
    if timestamp is not None:
        headers["X-Signature-Timestamp"] = timestamp
    return VerificationRequest(headers=headers, body=io.BytesIO(body), resource=resource)


class _BrokenStream(io.RawIOBase):
    def readable(self) -> bool:
        return True

    def readinto(self, buffer: object) -> int:
        raise OSError("connection reset")

    def read(self, size: int = -1) -> bytes:
        raise OSError("connection reset")


class TestVerificationOutcome:
    def test_allow(self) -> None:
        outcome = VerificationOutcome.allow()
        assert outcome.authorized
        assert outcome.reason is None

    def test_deny(self) -> None:
        outcome = VerificationOutcome.deny(DenialReason.SIGNATURE_MISMATCH)
        assert not outcome.authorized
        assert outcome.reason is DenialReason.SIGNATURE_MISMATCH


class TestVerificationRequest:
    def test_header_lookup_case_insensitive(self) -> None:
        request = VerificationRequest(
            headers={"x-signature-ed25519": "abc", "x-signature-timestamp": "1"}
        )
        assert request.signature == "abc"
        assert request.timestamp == "1"

    def test_missing_headers_are_empty(self) -> None:
        request = VerificationRequest()
        assert request.signature == ""
        assert request.timestamp == ""

    def test_from_event_plain_body(self) -> None:
        request = VerificationRequest.from_event(
            {
                "headers": {"X-Signature-Timestamp": _TIMESTAMP},
                "body": '{"type":1}',
                "methodArn": "arn:aws:execute-api:us-east-1:123:abc/dev/POST/interactions",
            }
        )
        assert request.timestamp == _TIMESTAMP
        assert request.body.read() == b'{"type":1}'
        assert request.resource.endswith("/POST/interactions")

    def test_from_event_base64_body(self) -> None:
        request = VerificationRequest.from_event(
            {"body": "aGVsbG8=", "isBase64Encoded": True, "methodArn": "arn"}
        )
        assert request.body.read() == b"hello"

    def test_from_event_missing_fields(self) -> None:
        request = VerificationRequest.from_event({"headers": None, "body": None})
        assert request.headers == {}
        assert request.body.read() == b""
        assert request.resource == ""


class TestDecodeSignature:
    def test_valid(self) -> None:
        sig = _sign(_TIMESTAMP, _BODY)
        assert decode_signature(sig) == bytes.fromhex(sig)

    def test_non_hex(self) -> None:
        assert decode_signature("zz" * 64) is None

    def test_odd_length(self) -> None:
        assert decode_signature("abc") is None

    def test_whitespace_rejected(self) -> None:
        assert decode_signature("00 " * 64) is None

    def test_wrong_length(self) -> None:
        assert decode_signature("00" * 63) is None
        assert decode_signature("00" * 65) is None

    def test_high_bits_of_last_byte(self) -> None:
        for last in ("20", "40", "80", "e0", "ff"):
            assert decode_signature("00" * 63 + last) is None

    def test_low_bits_of_last_byte_allowed(self) -> None:
        assert decode_signature("00" * 63 + "1f") is not None


class TestVerify:
    def test_valid_signature_authorized(self) -> None:
        request = _request(_sign(_TIMESTAMP, _BODY), _TIMESTAMP)
        assert verify(request, _VERIFY_KEY) == VerificationOutcome.allow()

    def test_empty_body_signed(self) -> None:
        request = _request(_sign(_TIMESTAMP, b""), _TIMESTAMP, body=b"")
        assert verify(request, _VERIFY_KEY).authorized

    def test_lowercase_headers(self) -> None:
        request = VerificationRequest(
            headers={
                "x-signature-ed25519": _sign(_TIMESTAMP, _BODY),
                "x-signature-timestamp": _TIMESTAMP,
            },
            body=io.BytesIO(_BODY),
        )
        assert verify(request, _VERIFY_KEY).authorized

    def test_uppercase_hex_accepted(self) -> None:
        request = _request(_sign(_TIMESTAMP, _BODY).upper(), _TIMESTAMP)
        assert verify(request, _VERIFY_KEY).authorized

    def test_no_headers(self) -> None:
        request = VerificationRequest(headers={}, body=io.BytesIO(b""))
        outcome = verify(request, _VERIFY_KEY)
        assert outcome.reason is DenialReason.MISSING_SIGNATURE

    def test_empty_signature_and_timestamp_denied(self) -> None:
        outcome = verify(_request("", ""), _VERIFY_KEY)
        assert outcome.reason is DenialReason.MISSING_SIGNATURE

    def test_missing_timestamp(self) -> None:
        outcome = verify(_request(_sign(_TIMESTAMP, _BODY), None), _VERIFY_KEY)
        assert outcome.reason is DenialReason.MISSING_TIMESTAMP

    def test_empty_timestamp(self) -> None:
        outcome = verify(_request(_sign(_TIMESTAMP, _BODY), ""), _VERIFY_KEY)
        assert outcome.reason is DenialReason.MISSING_TIMESTAMP

    def test_signature_checked_before_timestamp(self) -> None:
        outcome = verify(_request("not-hex", None), _VERIFY_KEY)
        assert outcome.reason is DenialReason.MALFORMED_SIGNATURE

    def test_non_hex_signature(self) -> None:
        outcome = verify(_request("g" * 128, _TIMESTAMP), _VERIFY_KEY)
        assert outcome.reason is DenialReason.MALFORMED_SIGNATURE

    def test_short_signature(self) -> None:
        outcome = verify(_request("ab" * 32, _TIMESTAMP), _VERIFY_KEY)
        assert outcome.reason is DenialReason.MALFORMED_SIGNATURE

    def test_non_canonical_signature(self) -> None:
        sig = bytearray.fromhex(_sign(_TIMESTAMP, _BODY))
        sig[63] |= 0x80
        outcome = verify(_request(sig.hex(), _TIMESTAMP), _VERIFY_KEY)
        assert outcome.reason is DenialReason.MALFORMED_SIGNATURE

    def test_wrong_key(self) -> None:
        other = SigningKey.generate()
        outcome = verify(_request(_sign(_TIMESTAMP, _BODY, other), _TIMESTAMP), _VERIFY_KEY)
        assert outcome.reason is DenialReason.SIGNATURE_MISMATCH

    def test_tampered_body(self) -> None:
        request = _request(_sign(_TIMESTAMP, _BODY), _TIMESTAMP, body=_BODY + b" ")
        assert verify(request, _VERIFY_KEY).reason is DenialReason.SIGNATURE_MISMATCH

    def test_different_timestamp(self) -> None:
        request = _request(_sign(_TIMESTAMP, _BODY), "1700000001")
        assert verify(request, _VERIFY_KEY).reason is DenialReason.SIGNATURE_MISMATCH

    def test_body_before_timestamp_rejected(self) -> None:
        sig = _SIGNER.sign(_BODY + _TIMESTAMP.encode()).signature.hex()
        outcome = verify(_request(sig, _TIMESTAMP), _VERIFY_KEY)
        assert outcome.reason is DenialReason.SIGNATURE_MISMATCH

    def test_separator_rejected(self) -> None:
        sig = _SIGNER.sign(_TIMESTAMP.encode() + b"\n" + _BODY).signature.hex()
        outcome = verify(_request(sig, _TIMESTAMP), _VERIFY_KEY)
        assert outcome.reason is DenialReason.SIGNATURE_MISMATCH

    def test_zero_signature_mismatch(self) -> None:
        outcome = verify(_request("00" * 64, _TIMESTAMP), _VERIFY_KEY)
        assert outcome.reason is DenialReason.SIGNATURE_MISMATCH

    def test_body_read_error(self) -> None:
        request = VerificationRequest(
            headers={
                "X-Signature-Ed25519": _sign(_TIMESTAMP, _BODY),
                "X-Signature-Timestamp": _TIMESTAMP,
            },
            body=_BrokenStream(),
        )
        outcome = verify(request, _VERIFY_KEY)
        assert outcome.reason is DenialReason.IO_ERROR
        assert request.body.read() == b""

    def test_closed_body_stream(self) -> None:
        body = io.BytesIO(_BODY)
        body.close()
        request = VerificationRequest(
            headers={
                "X-Signature-Ed25519": _sign(_TIMESTAMP, _BODY),
                "X-Signature-Timestamp": _TIMESTAMP,
            },
            body=body,
        )

        outcome = verify(request, _VERIFY_KEY)

        assert outcome.reason is DenialReason.IO_ERROR
        assert request.body.read() == b""

    def test_unencodable_timestamp(self) -> None:
        body = io.BytesIO(_BODY)
        request = VerificationRequest(
            headers={"X-Signature-Ed25519": "00" * 64, "X-Signature-Timestamp": "\ud800"},
            body=body,
        )

        outcome = verify(request, _VERIFY_KEY)

        assert outcome.reason is DenialReason.MISSING_TIMESTAMP
        assert request.body is body
        assert body.read() == _BODY


class TestBodyPreservation:
    def test_body_restored_after_success(self) -> None:
        request = _request(_sign(_TIMESTAMP, _BODY), _TIMESTAMP)
        verify(request, _VERIFY_KEY)
        assert request.body.read() == _BODY

    def test_body_restored_after_mismatch(self) -> None:
        request = _request("00" * 64, _TIMESTAMP)
        verify(request, _VERIFY_KEY)
        assert request.body.read() == _BODY

    def test_body_untouched_on_early_exit(self) -> None:
        body = io.BytesIO(_BODY)
        request = VerificationRequest(headers={}, body=body)
        verify(request, _VERIFY_KEY)
        assert request.body is body
        assert body.read() == _BODY

    def test_verify_twice_same_outcome(self) -> None:
        request = _request(_sign(_TIMESTAMP, _BODY), _TIMESTAMP)
        first = verify(request, _VERIFY_KEY)
        second = verify(request, _VERIFY_KEY)
        assert first == second == VerificationOutcome.allow()
        assert request.body.read() == _BODY

    def test_replayable_body_restores_on_exception(self) -> None:
        request = _request(None, None)
        original = request.body
        try:
            with replayable_body(request) as buffer:
                buffer.write(original.read(4))
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert original.closed
        assert request.body.read() == _BODY[:4]
