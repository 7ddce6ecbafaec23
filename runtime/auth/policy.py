"""API Gateway authorizer responses.

Turns a :class:`~runtime.auth.signature.VerificationOutcome` into the
IAM policy document API Gateway expects from a Lambda authorizer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from nacl.signing import VerifyKey
from pydantic import BaseModel, ConfigDict, Field

from runtime.auth.signature import VerificationOutcome, VerificationRequest, verify
from runtime.shared.constants import (
    CONTEXT_SIGNATURE_CHECKED,
    EFFECT_ALLOW,
    EFFECT_DENY,
    POLICY_ACTION_INVOKE,
    POLICY_VERSION,
    PRINCIPAL_ID,
)

Effect = Literal["Allow", "Deny"]


class PolicyStatement(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: list[str] = Field(
        default_factory=lambda: [POLICY_ACTION_INVOKE], serialization_alias="Action"
    )
    effect: Effect = Field(..., serialization_alias="Effect")
    resource: list[str] = Field(..., serialization_alias="Resource")


class PolicyDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str = Field(POLICY_VERSION, serialization_alias="Version")
    statement: list[PolicyStatement] = Field(..., serialization_alias="Statement")


class AuthorizationDecision(BaseModel):
    """Decision returned to API Gateway.

    ``effect`` is kept on the object only.  The gateway reads the verdict
    from the policy statement, so a decision without a policy document is
    never a grant.  ``context`` is passed through to the integration and
    carries no authorization weight.
    """

    model_config = ConfigDict(frozen=True)

    principal_id: str = PRINCIPAL_ID
    effect: Effect
    policy_document: PolicyDocument | None = None
    context: dict[str, Any] = Field(default_factory=dict)

    @property
    def allowed(self) -> bool:
        return self.effect == EFFECT_ALLOW and self.policy_document is not None

    def to_response(self) -> dict[str, Any]:
        """Serialise to the Lambda authorizer response shape."""
        response: dict[str, Any] = {"principalId": self.principal_id}
        if self.policy_document is not None:
            response["policyDocument"] = self.policy_document.model_dump(by_alias=True)
        response["context"] = dict(self.context)
        return response


@dataclass(frozen=True)
class AuthorizerResult:
    """A decision plus an optional error.

    Hosts must treat a non-``None`` ``error`` as an unconditional deny,
    whatever the decision says.
    """

    decision: AuthorizationDecision
    error: str | None = None

    @property
    def denied(self) -> bool:
        return self.error is not None or not self.decision.allowed


def build_decision(outcome: VerificationOutcome, resource: str) -> AuthorizationDecision:
    """Map a verification outcome onto an Allow/Deny decision for *resource*.

    An empty *resource* yields a decision with no policy document at all.
    """
    effect: Effect = EFFECT_ALLOW if outcome.authorized else EFFECT_DENY

    policy_document = None
    if resource:
        policy_document = PolicyDocument(
            statement=[PolicyStatement(effect=effect, resource=[resource])],
        )

    return AuthorizationDecision(
        effect=effect,
        policy_document=policy_document,
        context={CONTEXT_SIGNATURE_CHECKED: True},
    )


def authorize(request: VerificationRequest, signing_key: VerifyKey) -> AuthorizerResult:
    """Verify *request* and build the matching :class:`AuthorizerResult`."""
    outcome = verify(request, signing_key)
    decision = build_decision(outcome, request.resource)
    error = outcome.reason.value if outcome.reason is not None else None
    return AuthorizerResult(decision=decision, error=error)
