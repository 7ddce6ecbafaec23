"""Shared configuration and environment settings for CDK infrastructure."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class EnvironmentConfig:
    """Immutable configuration for a deployment environment."""

    stage: str
    aws_account_id: str
    aws_region: str

    # Naming
    project_name: str = "webhook-signature-authorizer"

    # Lambda defaults
    lambda_memory_mb: int = 128
    lambda_timeout_seconds: int = 5
    lambda_runtime_python: str = "python3.11"

    # Secrets
    secrets_prefix: str = "webhook-signature-authorizer"
    public_key_secret_name: str = "discord-public-key"

    # Tags
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def resource_prefix(self) -> str:
        return f"{self.project_name}-{self.stage}"

    def resource_name(self, name: str) -> str:
        return f"{self.resource_prefix}-{name}"

    @property
    def secret_path(self) -> str:
        return f"{self.secrets_prefix}/{self.stage}/{self.public_key_secret_name}"


# Pre-defined environment configurations
# NOTE: aws_account_id values are placeholders; set them to your AWS account IDs before deploy.
_ENV_CONFIGS: dict[str, dict[str, object]] = {
    "dev": {
        "stage": "dev",
        "aws_account_id": "000000000000",
        "aws_region": "us-east-1",
        "tags": {"Environment": "dev", "Project": "webhook-signature-authorizer"},
    },
    "staging": {
        "stage": "staging",
        "aws_account_id": "000000000000",
        "aws_region": "us-east-1",
        "tags": {"Environment": "staging", "Project": "webhook-signature-authorizer"},
    },
    "prod": {
        "stage": "prod",
        "aws_account_id": "000000000000",
        "aws_region": "us-east-1",
        "lambda_memory_mb": 256,
        "tags": {"Environment": "prod", "Project": "webhook-signature-authorizer"},
    },
}


def get_environment_config(env_name: str) -> EnvironmentConfig:
    """Get configuration for the given environment name.

    Args:
        env_name: One of 'dev', 'staging', 'prod'.

    Returns:
        EnvironmentConfig for the requested environment.

    Raises:
        ValueError: If env_name is not recognized.
    """
    if env_name not in _ENV_CONFIGS:
        raise ValueError(
            f"Unknown environment '{env_name}'. Choose from: {list(_ENV_CONFIGS.keys())}"
        )
    return EnvironmentConfig(**_ENV_CONFIGS[env_name])  # type: ignore[arg-type]
