# apps/payments/gateway/validators.py
from __future__ import annotations

from apps.payments.exceptions import (
    GatewayUnavailableError,
    HardDeclineError,
    SoftDeclineError,
)
from apps.payments.gateway.responses import (
    AuthorizationDetails,
    AuthorizationReasonCode,
    AuthorizationState,
)

ACCEPTED_STATES = frozenset(
    {
        AuthorizationState.PENDING,
        AuthorizationState.OPEN,
        AuthorizationState.CLOSED,
    }
)

SOFT_DECLINE_REASONS = frozenset({AuthorizationReasonCode.INVALID_PAYMENT_METHOD})

HARD_DECLINE_REASONS = frozenset(
    {
        AuthorizationReasonCode.AMAZON_REJECTED,
        AuthorizationReasonCode.PROCESSING_FAILURE,
        AuthorizationReasonCode.TRANSACTION_TIMED_OUT,
    }
)


class AuthorizationValidator:
    """
    Классифицирует AuthorizationDetails:
    - accepted: return None
    - soft decline: SoftDeclineError
    - hard decline: HardDeclineError
    - неизвестный state/reason: GatewayUnavailableError
    """

    def validate(self, details: AuthorizationDetails) -> None:
        state = details.status.state

        if state in ACCEPTED_STATES:
            return

        if state == AuthorizationState.DECLINED:
            reason = details.status.reason_code

            if reason in SOFT_DECLINE_REASONS:
                raise SoftDeclineError(reason)
            if reason in HARD_DECLINE_REASONS:
                raise HardDeclineError(reason)

            raise GatewayUnavailableError(f"Unknown decline reason code: {reason}")

        raise GatewayUnavailableError(f"Unknown authorization state: {state}")
