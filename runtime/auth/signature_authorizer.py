"""Webhook signature authorizer Lambda function for API Gateway.

Verifies that an inbound webhook delivery was signed with the sender's
Ed25519 key and returns an IAM policy document that API Gateway uses to
allow or deny the request.
"""

from __future__ import annotations

import logging
from typing import Any

from nacl.signing import VerifyKey

from runtime.auth.policy import AuthorizerResult, authorize, build_decision
from runtime.auth.signature import (
    DenialReason,
    VerificationOutcome,
    VerificationRequest,
)
from runtime.shared.signing_key import get_signing_key

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Lambda authorizer entry-point for webhook signature checks.

    Environment variables consumed:
        PUBLIC_KEY_SECRET_NAME – Secrets Manager name holding the sender's
            hex-encoded Ed25519 public key.
        DISCORD_PUBLIC_KEY     – (optional) the hex key itself, used
            instead of the secret when set.

    Raises:
        ConfigurationError: If the public key is missing or malformed.
            No decision is produced in that case.
    """
    signing_key = get_signing_key()

    result = evaluate(event, signing_key)
    if result.error is not None:
        logger.warning(
            "Denied webhook request for %s: %s",
            event.get("methodArn", ""),
            result.error,
        )
    return result.decision.to_response()


def evaluate(event: dict[str, Any], signing_key: VerifyKey) -> AuthorizerResult:
    """Run the signature check for a raw API Gateway *event*."""
    try:
        request = VerificationRequest.from_event(event)
    except ValueError:
        logger.warning("Request body could not be decoded")
        outcome = VerificationOutcome.deny(DenialReason.IO_ERROR)
        return AuthorizerResult(
            decision=build_decision(outcome, event.get("methodArn", "")),
            error=DenialReason.IO_ERROR.value,
        )
    return authorize(request, signing_key)
