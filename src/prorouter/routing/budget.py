"""Premium provider budget admission.

The premium provider has a hard monthly token cap per region. This
module decides, per request, whether the premium provider may be
used at all (hard cap) and whether it can safely take *this*
request (pre-flight estimate against the remaining budget).

The usage numbers themselves come from the billing collaborator;
the guard only reads a snapshot and never persists anything.

Denials never raise: they come back as a tagged FallbackReason for
the dispatcher and for audit logging.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

from prorouter.config import BudgetPolicy
from prorouter.routing.keywords import Intent
from prorouter.routing.scorer import round_half_up

logger = logging.getLogger(__name__)


class Region(str, Enum):
    """Billing regions with independently maintained caps."""
    IN = "IN"       # India
    INTL = "INTL"   # International


class FallbackReason(str, Enum):
    """Why the premium provider was denied."""
    CAP_REACHED = "gpt_cap_reached"
    ESTIMATION_EXCEEDED = "gpt_estimation_exceeded"
    NOT_ALLOWED = "gpt_not_allowed"


@dataclass(frozen=True)
class BudgetState:
    """Read-only snapshot of premium usage for one request."""
    cap_limit: int
    tokens_used: int
    safe_threshold: int = 20_000

    @property
    def tokens_remaining(self) -> int:
        return max(0, self.cap_limit - self.tokens_used)

    @property
    def cap_reached(self) -> bool:
        return self.tokens_remaining < self.safe_threshold

    @classmethod
    def unknown(cls, cap_limit: int, safe_threshold: int = 20_000) -> "BudgetState":
        """Snapshot for when usage could not be fetched.

        Treated as fully spent, so premium admission always fails.
        """
        return cls(cap_limit=cap_limit, tokens_used=cap_limit, safe_threshold=safe_threshold)


@dataclass(frozen=True)
class EstimationResult:
    """Pre-flight token estimate for a request."""
    estimated_tokens: int
    can_afford_with_buffer: bool


@dataclass(frozen=True)
class Admission:
    """Budget guard verdict for one request."""
    allowed: bool
    estimated_tokens: int
    soft_escalation: bool = False
    fallback_reason: FallbackReason | None = None
    tokens_remaining: int = 0
    can_afford_with_buffer: bool = False


def _region_key(region: Region | str) -> str:
    return region.value if isinstance(region, Region) else str(region)


class BudgetGuard:
    """Admission control for the premium provider.

    Per-intent policy:
    - EVERYDAY: never admitted (policy, not a budget calculation)
    - PROFESSIONAL: rare soft escalation when budget is plentiful and
      professional signal is strong
    - EXPERT: admitted whenever the hard cap and pre-flight pass
    """

    def __init__(self, policy: BudgetPolicy | None = None):
        self.policy = policy or BudgetPolicy()

    def cap_for(self, region: Region | str) -> int:
        """Monthly premium cap for a region.

        Unknown regions get the smallest configured cap rather than an
        error, so a bad region code can only under-spend.
        """
        key = _region_key(region)
        cap = self.policy.caps.get(key)
        if cap is None:
            cap = min(self.policy.caps.values())
            logger.warning(f"Unknown region '{key}', using smallest cap {cap}")
        return cap

    def state_for(self, region: Region | str, tokens_used: int | None) -> BudgetState:
        """Build the budget snapshot for a region and usage figure."""
        cap = self.cap_for(region)
        if tokens_used is None:
            logger.info(
                f"Premium usage unknown for region {_region_key(region)}, "
                f"treating cap as reached")
            return BudgetState.unknown(cap, self.policy.safe_threshold)
        return BudgetState(
            cap_limit=cap,
            tokens_used=max(0, tokens_used),
            safe_threshold=self.policy.safe_threshold,
        )

    def estimate_tokens(self, message: str | None, intent: Intent) -> int:
        """Rough token estimate: input at ~4 chars/token plus fixed
        overhead, plus the expected response budget for the intent."""
        p = self.policy
        length = len(message or "")
        input_tokens = math.ceil(length / p.chars_per_token) + p.input_overhead
        return input_tokens + p.response_budget[Intent(intent).value]

    def estimate(self, message: str | None, intent: Intent, state: BudgetState) -> EstimationResult:
        estimated = self.estimate_tokens(message, intent)
        return EstimationResult(
            estimated_tokens=estimated,
            can_afford_with_buffer=estimated <= state.tokens_remaining - self.policy.preflight_buffer,
        )

    def admit(
        self,
        intent: Intent,
        message: str | None,
        state: BudgetState,
        professional_score: float = 0.0,
    ) -> Admission:
        """Decide whether the premium provider may serve this request.

        Args:
            intent: Classified intent.
            message: The user's message (for the token estimate).
            state: Budget snapshot.
            professional_score: Classifier's (adjusted) professional score,
                used only for soft escalation.

        Returns:
            Admission (never raises).
        """
        p = self.policy
        estimation = self.estimate(message, intent, state)
        remaining = state.tokens_remaining

        def deny(reason: FallbackReason) -> Admission:
            return Admission(
                allowed=False,
                estimated_tokens=estimation.estimated_tokens,
                fallback_reason=reason,
                tokens_remaining=remaining,
                can_afford_with_buffer=estimation.can_afford_with_buffer,
            )

        if intent == Intent.EVERYDAY:
            return deny(FallbackReason.NOT_ALLOWED)

        if state.cap_reached:
            return deny(FallbackReason.CAP_REACHED)

        if not estimation.can_afford_with_buffer:
            return deny(FallbackReason.ESTIMATION_EXCEEDED)

        soft_escalation = False
        if intent == Intent.PROFESSIONAL:
            if (
                remaining > p.soft_escalation_min_remaining
                and professional_score >= p.soft_escalation_min_score
            ):
                soft_escalation = True
            else:
                return deny(FallbackReason.NOT_ALLOWED)

        return Admission(
            allowed=True,
            estimated_tokens=estimation.estimated_tokens,
            soft_escalation=soft_escalation,
            tokens_remaining=remaining,
            can_afford_with_buffer=True,
        )

    def is_premium_available(self, region: Region | str, tokens_used: int) -> bool:
        """Whether the region's premium cap still has headroom."""
        return not self.state_for(region, tokens_used).cap_reached

    def usage_stats(self, region: Region | str, tokens_used: int) -> dict[str, Any]:
        """Premium usage stats for dashboards and the CLI."""
        state = self.state_for(region, tokens_used)
        percent = (
            round_half_up(state.tokens_used / state.cap_limit * 100)
            if state.cap_limit > 0 else 100
        )
        return {
            "used": state.tokens_used,
            "remaining": state.tokens_remaining,
            "cap": state.cap_limit,
            "percent_used": percent,
            "is_near_cap": state.tokens_remaining < self.policy.near_cap_threshold,
            "is_cap_reached": state.cap_reached,
        }
