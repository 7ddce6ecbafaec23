#!/usr/bin/env python3
"""CDK application entry point for the webhook signature authorizer."""

import aws_cdk as cdk

from infra.auth_stack import AuthStack
from infra.config import get_environment_config

app = cdk.App()

env_name = app.node.try_get_context("env") or "dev"
config = get_environment_config(env_name)

env = cdk.Environment(
    account=config.aws_account_id,
    region=config.aws_region,
)

AuthStack(
    app,
    f"WebhookSignatureAuthorizer-Auth-{config.stage}",
    config=config,
    env=env,
    description=f"Webhook signature authorizer ({config.stage})",
)

app.synth()
