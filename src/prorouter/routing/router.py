"""Pro-tier model router.

Single entry point that sequences the routing pipeline:
- Intent classification (keyword scoring + session hysteresis)
- Budget admission for the premium provider (regional cap + pre-flight)
- Deterministic hash dispatch among equivalent providers
- Delta prompt selection

Every decision carries a metadata block from which it can be
explained after the fact, without re-running anything.
"""

import logging
from dataclasses import dataclass
from typing import Any

from prorouter.config import RouterSettings
from prorouter.routing.budget import BudgetGuard, FallbackReason, Region
from prorouter.routing.delta import DeltaPromptSelector, is_follow_up as follow_up_turn
from prorouter.routing.dispatch import DispatchSelector, routing_hash
from prorouter.routing.keywords import Intent, KeywordRegistry, KeywordTable, default_table
from prorouter.routing.nudge import NudgeType, detect_nudge
from prorouter.routing.scorer import ClassificationResult, IntentClassifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoutingMetadata:
    """Audit fields explaining a routing decision."""
    tokens_used: int
    tokens_remaining: int
    cap_limit: int
    soft_escalation_triggered: bool = False
    fallback_applied: bool = False
    fallback_reason: FallbackReason | None = None
    routing_hash: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "tokens_used": self.tokens_used,
            "tokens_remaining": self.tokens_remaining,
            "cap_limit": self.cap_limit,
            "soft_escalation_triggered": self.soft_escalation_triggered,
            "fallback_applied": self.fallback_applied,
            "fallback_reason": self.fallback_reason.value if self.fallback_reason else None,
            "routing_hash": self.routing_hash,
        }


@dataclass(frozen=True)
class RoutingResult:
    """The result of routing one message."""
    provider: str
    display_name: str
    intent: Intent
    delta_prompt: str
    premium_allowed: bool
    cap_reached: bool
    is_follow_up: bool
    estimated_tokens: int
    metadata: RoutingMetadata
    classification: ClassificationResult
    nudge: NudgeType | None = None
    estimated_cost: float = 0.0

    @property
    def confidence(self) -> int:
        return self.classification.confidence

    @property
    def should_lock(self) -> bool:
        return self.classification.should_lock

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe representation for structured logs."""
        return {
            "provider": self.provider,
            "display_name": self.display_name,
            "intent": self.intent.value,
            "confidence": self.confidence,
            "should_lock": self.should_lock,
            "delta_prompt": self.delta_prompt,
            "premium_allowed": self.premium_allowed,
            "cap_reached": self.cap_reached,
            "is_follow_up": self.is_follow_up,
            "estimated_tokens": self.estimated_tokens,
            "estimated_cost": round(self.estimated_cost, 6),
            "nudge": self.nudge.value if self.nudge else None,
            "metadata": self.metadata.to_dict(),
        }


class ProRouter:
    """Routes Pro-tier messages to providers under the premium cap.

    Usage:
        router = ProRouter()
        result = router.route("hi, how are you", tokens_used=0, region=Region.IN)
        # result.intent = Intent.EVERYDAY
        # result.provider in {"gemini-2.5-flash", "mistral-large-3"}
    """

    def __init__(
        self,
        settings: RouterSettings | None = None,
        keywords: KeywordTable | KeywordRegistry | None = None,
    ):
        self.settings = settings or RouterSettings()
        self.keywords = keywords or KeywordRegistry(default_table(), self.settings.keyword_limits)
        self.classifier = IntentClassifier(self.keywords, self.settings.classifier)
        self.guard = BudgetGuard(self.settings.budget)
        self.dispatcher = DispatchSelector(self.settings.dispatch)
        self.deltas = DeltaPromptSelector()

    def classify(
        self,
        message: str | None,
        session_intent: Intent | None = None,
        session_intent_locked: bool = False,
        remaining_premium_tokens: int | None = None,
    ) -> ClassificationResult:
        """Classify a message without routing it."""
        return self.classifier.classify(
            message,
            session_intent=session_intent,
            session_intent_locked=session_intent_locked,
            remaining_premium_tokens=remaining_premium_tokens,
        )

    def route(
        self,
        message: str | None,
        tokens_used: int | None,
        region: Region | str,
        turn_number: int = 1,
        session_intent: Intent | None = None,
        session_intent_locked: bool = False,
        user_id: str | None = None,
    ) -> RoutingResult:
        """Route a message to a provider.

        Args:
            message: User's message text.
            tokens_used: Premium tokens used this billing cycle. None means
                the usage lookup failed; the cap is then treated as reached.
            region: Billing region (selects the cap).
            turn_number: 1-based turn index in the conversation.
            session_intent: Intent locked for this session, if any.
            session_intent_locked: Whether the session lock is active.
            user_id: Optional user id mixed into the routing hash.

        Returns:
            RoutingResult with provider selection and audit metadata.
        """
        budget = self.guard.state_for(region, tokens_used)

        classification = self.classifier.classify(
            message,
            session_intent=session_intent,
            session_intent_locked=session_intent_locked,
            remaining_premium_tokens=budget.tokens_remaining,
        )
        intent = classification.intent

        admission = self.guard.admit(
            intent,
            message,
            budget,
            professional_score=classification.professional_score,
        )

        bucket = routing_hash(message, user_id)
        decision = self.dispatcher.select(intent, admission, bucket)

        follow_up = follow_up_turn(turn_number, session_intent_locked)
        delta_prompt = self.deltas.delta(
            intent,
            message,
            is_follow_up=follow_up,
            cap_reached=budget.cap_reached,
        )

        metadata = RoutingMetadata(
            tokens_used=budget.tokens_used,
            tokens_remaining=budget.tokens_remaining,
            cap_limit=budget.cap_limit,
            soft_escalation_triggered=admission.soft_escalation,
            fallback_applied=decision.used_fallback,
            fallback_reason=decision.fallback_reason,
            routing_hash=decision.routing_hash,
        )

        result = RoutingResult(
            provider=decision.provider_id,
            display_name=decision.display_name,
            intent=intent,
            delta_prompt=delta_prompt,
            premium_allowed=admission.allowed,
            cap_reached=budget.cap_reached,
            is_follow_up=follow_up,
            estimated_tokens=admission.estimated_tokens,
            metadata=metadata,
            classification=classification,
            nudge=detect_nudge(message),
            estimated_cost=self.dispatcher.estimate_call_cost(
                decision.provider_id, admission.estimated_tokens),
        )

        logger.debug(
            f"Routed intent={intent.value} confidence={classification.confidence} "
            f"provider={decision.provider_id} hash={bucket} "
            f"fallback={metadata.fallback_reason.value if metadata.fallback_reason else None} "
            f"remaining={budget.tokens_remaining}/{budget.cap_limit}"
        )
        return result
