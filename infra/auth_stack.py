"""Authentication CDK stack for the webhook signature authorizer.

Provisions the Lambda authorizer that API Gateway calls to verify
webhook signatures, and the Secrets Manager entry holding the sender's
public key.
"""

from __future__ import annotations

from aws_cdk import CfnOutput, Duration, RemovalPolicy, Stack, Tags
from aws_cdk import aws_lambda as _lambda
from aws_cdk import aws_secretsmanager as secretsmanager
from aws_cdk import aws_ssm as ssm
from constructs import Construct

from infra.config import EnvironmentConfig


class AuthStack(Stack):
    """Signature authorizer Lambda and its public-key secret."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        config: EnvironmentConfig,
        **kwargs: object,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self._config = config

        for key, value in config.tags.items():
            Tags.of(self).add(key, value)

        # --- Secrets ---
        self.public_key_secret = secretsmanager.Secret(
            self,
            "Secret-public-key",
            secret_name=config.secret_path,
            description=(
                f"Hex-encoded Ed25519 webhook public key for {config.stage} environment"
            ),
            removal_policy=(
                RemovalPolicy.DESTROY if config.stage == "dev" else RemovalPolicy.RETAIN
            ),
        )

        # --- Lambda Authorizer ---
        self.signature_authorizer_fn = self._create_signature_authorizer()

        # --- SSM Parameters ---
        self._publish_ssm_params()

        # --- Outputs ---
        self._create_outputs()

    # ------------------------------------------------------------------
    # Lambda Authorizer
    # ------------------------------------------------------------------

    def _create_signature_authorizer(self) -> _lambda.Function:
        """Create the webhook signature authorizer Lambda function."""
        fn = _lambda.Function(
            self,
            "SignatureAuthorizerFn",
            function_name=self._config.resource_name("signature-authorizer"),
            runtime=_lambda.Runtime(
                self._config.lambda_runtime_python, _lambda.RuntimeFamily.PYTHON
            ),
            handler="runtime.auth.signature_authorizer.handler",
            code=_lambda.Code.from_asset("."),
            memory_size=self._config.lambda_memory_mb,
            timeout=Duration.seconds(self._config.lambda_timeout_seconds),
            environment={
                "STAGE": self._config.stage,
                "PUBLIC_KEY_SECRET_NAME": self.public_key_secret.secret_name,
            },
            description="Webhook Ed25519 signature authorizer for API Gateway",
        )
        self.public_key_secret.grant_read(fn)
        return fn

    # ------------------------------------------------------------------
    # SSM Parameters
    # ------------------------------------------------------------------

    def _publish_ssm_params(self) -> None:
        prefix = f"/{self._config.resource_prefix}"

        ssm.StringParameter(
            self,
            "SsmSignatureAuthorizerArn",
            parameter_name=f"{prefix}/signature-authorizer-arn",
            string_value=self.signature_authorizer_fn.function_arn,
            description="Signature authorizer Lambda ARN",
        )

        ssm.StringParameter(
            self,
            "SsmPublicKeySecretArn",
            parameter_name=f"{prefix}/public-key-secret-arn",
            string_value=self.public_key_secret.secret_arn,
            description="Webhook public key secret ARN",
        )

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    def _create_outputs(self) -> None:
        CfnOutput(
            self,
            "SignatureAuthorizerFnArn",
            value=self.signature_authorizer_fn.function_arn,
            description="Signature authorizer Lambda ARN",
        )
        CfnOutput(
            self,
            "PublicKeySecretArn",
            value=self.public_key_secret.secret_arn,
            description="Webhook public key secret ARN",
        )
