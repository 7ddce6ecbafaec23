"""Process-wide public key used to verify webhook signatures.

The key is resolved once per Lambda container (cold start) and cached for
the container's lifetime.  It is either supplied inline through the
environment or fetched from AWS Secrets Manager.  A missing or malformed
key is a :class:`ConfigurationError`: the function must not serve requests
until its configuration is fixed.
"""

from __future__ import annotations

import logging
from typing import Any

import boto3
import nacl.exceptions
from botocore.exceptions import ClientError
from nacl.signing import VerifyKey

from runtime.shared.config import AuthorizerConfig, load_authorizer_config
from runtime.shared.constants import (
    ENV_PUBLIC_KEY,
    ENV_PUBLIC_KEY_SECRET_NAME,
    PUBLIC_KEY_SIZE,
)

logger = logging.getLogger(__name__)

_signing_key: VerifyKey | None = None


class ConfigurationError(Exception):
    """Raised when the signing key is missing or cannot be used."""


def parse_public_key(value: str) -> VerifyKey:
    """Parse a hex-encoded Ed25519 public key.

    Raises:
        ConfigurationError: If *value* is empty, not hex, or not 32 bytes.
    """
    value = value.strip()
    if not value:
        raise ConfigurationError("Public key is empty")

    try:
        raw = bytes.fromhex(value)
    except ValueError as exc:
        raise ConfigurationError("Public key is not valid hex") from exc

    if len(raw) != PUBLIC_KEY_SIZE:
        raise ConfigurationError(
            f"Public key must be {PUBLIC_KEY_SIZE} bytes, got {len(raw)}"
        )

    try:
        return VerifyKey(raw)
    except nacl.exceptions.CryptoError as exc:
        raise ConfigurationError("Public key rejected by libsodium") from exc


def fetch_public_key(config: AuthorizerConfig) -> str:
    """Return the hex public key text named by *config*.

    The inline value wins over the Secrets Manager secret.

    Raises:
        ConfigurationError: If neither source is configured or the secret
            cannot be read.
    """
    if config.public_key_hex:
        return config.public_key_hex

    if not config.public_key_secret_name:
        raise ConfigurationError(
            f"Neither {ENV_PUBLIC_KEY} nor {ENV_PUBLIC_KEY_SECRET_NAME} is set"
        )

    kwargs: dict[str, Any] = {"region_name": config.aws_region}
    if config.secrets_manager_endpoint:
        kwargs["endpoint_url"] = config.secrets_manager_endpoint
    client = boto3.client("secretsmanager", **kwargs)

    try:
        response = client.get_secret_value(SecretId=config.public_key_secret_name)
    except ClientError as exc:
        logger.exception(
            "Failed to retrieve public key secret: %s", config.public_key_secret_name
        )
        raise ConfigurationError("Public key secret could not be read") from exc

    value: str | None = response.get("SecretString")
    if value is None:
        raise ConfigurationError("Public key secret has no string value")
    return value


def load_signing_key(config: AuthorizerConfig) -> VerifyKey:
    """Resolve and parse the public key described by *config*."""
    return parse_public_key(fetch_public_key(config))


def get_signing_key() -> VerifyKey:
    """Return the cached process-wide key, loading it on first use.

    Raises:
        ConfigurationError: If the key cannot be loaded.  Nothing is cached
            in that case, so every invocation keeps failing until fixed.
    """
    global _signing_key

    if _signing_key is None:
        try:
            _signing_key = load_signing_key(load_authorizer_config())
        except ConfigurationError:
            logger.error("Signing key unavailable; refusing to authorize requests")
            raise
    return _signing_key


def clear_cache() -> None:
    """Forget the cached key (useful for testing)."""
    global _signing_key
    _signing_key = None
