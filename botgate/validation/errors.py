from __future__ import annotations

# ---- Typed failures ------------------------------------------------------------
# Every one of these resolves to fail-open; none reaches the end user.


class DecisionServiceError(RuntimeError):
    """Base class for decision-service failures."""

    reason = "error"


class DecisionTimeout(DecisionServiceError):
    reason = "timeout"


class DecisionTransportError(DecisionServiceError):
    reason = "transport"


class MalformedVerdictBody(DecisionServiceError):
    """A blocking response whose body carries no usable redirect URL."""

    reason = "malformed_body"
