"""Runtime configuration loaded from environment variables.

The authorizer Lambda reads these values at cold-start to locate the
sender's public key.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from runtime.shared.constants import (
    ENV_AWS_REGION,
    ENV_PUBLIC_KEY,
    ENV_PUBLIC_KEY_SECRET_NAME,
    ENV_SECRETS_MANAGER_ENDPOINT,
    ENV_STAGE,
)


@dataclass(frozen=True)
class AuthorizerConfig:
    """Runtime configuration sourced from Lambda environment variables."""

    stage: str
    aws_region: str

    # Hex public key given inline (local runs); takes precedence over the secret
    public_key_hex: str | None = None

    # Secrets Manager
    public_key_secret_name: str | None = None
    secrets_manager_endpoint: str | None = None


def load_authorizer_config() -> AuthorizerConfig:
    """Build AuthorizerConfig from environment variables set by CDK.

    Empty values are treated as unset.
    """
    return AuthorizerConfig(
        stage=os.environ.get(ENV_STAGE, "dev"),
        aws_region=os.environ.get(ENV_AWS_REGION, "us-east-1"),
        public_key_hex=os.environ.get(ENV_PUBLIC_KEY) or None,
        public_key_secret_name=os.environ.get(ENV_PUBLIC_KEY_SECRET_NAME) or None,
        secrets_manager_endpoint=os.environ.get(ENV_SECRETS_MANAGER_ENDPOINT) or None,
    )
