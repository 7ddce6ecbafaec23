"""Shared constants used across Lambda functions."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Signed request headers
# ---------------------------------------------------------------------------
HEADER_SIGNATURE = "X-Signature-Ed25519"
HEADER_TIMESTAMP = "X-Signature-Timestamp"

# ---------------------------------------------------------------------------
# Ed25519
# ---------------------------------------------------------------------------
SIGNATURE_SIZE = 64
PUBLIC_KEY_SIZE = 32

# Top three bits of the final signature byte must be clear.
SIGNATURE_CANONICAL_MASK = 0xE0

# ---------------------------------------------------------------------------
# API Gateway policy
# ---------------------------------------------------------------------------
POLICY_VERSION = "2012-10-17"
POLICY_ACTION_INVOKE = "execute-api:Invoke"

EFFECT_ALLOW = "Allow"
EFFECT_DENY = "Deny"

VALID_EFFECTS = frozenset({EFFECT_ALLOW, EFFECT_DENY})

# The authorizer authenticates the sender, never a user.
PRINCIPAL_ID = "user"

CONTEXT_SIGNATURE_CHECKED = "discord-check-sig"

# ---------------------------------------------------------------------------
# Environment variables
# ---------------------------------------------------------------------------
ENV_STAGE = "STAGE"
ENV_AWS_REGION = "AWS_REGION"
ENV_PUBLIC_KEY = "DISCORD_PUBLIC_KEY"
ENV_PUBLIC_KEY_SECRET_NAME = "PUBLIC_KEY_SECRET_NAME"
ENV_SECRETS_MANAGER_ENDPOINT = "SECRETS_MANAGER_ENDPOINT"
