"""End-to-end tests for ProRouter.

Covers:
1. Reference scenarios (casual greeting, expert with budget, expert capped)
2. Routing invariants (hard cap, everyday never premium, determinism)
3. Professional soft escalation and budget pressure
4. Session behaviour (follow-ups, locking)
5. Audit output and runtime keyword updates
"""

import json

import pytest

from prorouter.config import BudgetPolicy, RouterSettings
from prorouter.routing import ProRouter, Region
from prorouter.routing.budget import FallbackReason
from prorouter.routing.delta import EXPERT_FALLBACK_DELTA, FOLLOW_UP_DELTAS
from prorouter.routing.dispatch import routing_hash
from prorouter.routing.keywords import Intent, WeightClass

PREMIUM = "gpt-5.1"

SAMPLE_MESSAGES = [
    "hi, how are you",
    "what's a good pasta recipe for dinner",
    "Let's plan the team offsite",
    "Draft a business plan and go-to-market roadmap with pricing strategy for our client",
    "root cause analysis of the outage and a failure mode review",
    "Please do a deep risk analysis and cost-benefit analysis of this "
    "multi-variable architecture decision",
    "",
]


# ═══════════════════════════════════════════════════════════════
# 1. REFERENCE SCENARIOS
# ═══════════════════════════════════════════════════════════════

class TestScenarios:
    """The canonical examples."""

    def test_casual_greeting(self, router):
        message = "hi, how are you"
        result = router.route(message, tokens_used=0, region=Region.IN)

        assert result.intent == Intent.EVERYDAY
        assert result.premium_allowed is False
        expected = "gemini-2.5-flash" if routing_hash(message) < 60 else "mistral-large-3"
        assert result.provider == expected
        assert result.metadata.fallback_applied is False

    def test_expert_with_budget(self, router, expert_message):
        result = router.route(expert_message, tokens_used=0, region=Region.INTL)

        assert result.intent == Intent.EXPERT
        assert result.classification.adjusted_scores["expert"] >= 9
        assert result.provider == PREMIUM
        assert result.premium_allowed is True
        assert result.cap_reached is False
        assert result.metadata.tokens_remaining == 650_000

    def test_expert_cap_reached(self, router, expert_message):
        result = router.route(expert_message, tokens_used=205_000, region=Region.IN)

        assert result.intent == Intent.EXPERT
        assert result.provider == "gemini-2.5-pro"
        assert result.premium_allowed is False
        assert result.cap_reached is True
        assert result.metadata.tokens_remaining == 15_000
        assert result.metadata.fallback_applied is True
        assert result.metadata.fallback_reason == FallbackReason.CAP_REACHED
        assert result.delta_prompt.startswith(EXPERT_FALLBACK_DELTA)

    def test_unknown_usage_falls_back(self, router, expert_message):
        result = router.route(expert_message, tokens_used=None, region=Region.INTL)

        assert result.provider != PREMIUM
        assert result.cap_reached is True
        assert result.metadata.fallback_reason == FallbackReason.CAP_REACHED


# ═══════════════════════════════════════════════════════════════
# 2. INVARIANTS
# ═══════════════════════════════════════════════════════════════

class TestInvariants:
    """Properties that hold for every input."""

    @pytest.mark.parametrize("message", SAMPLE_MESSAGES)
    def test_no_premium_past_safe_threshold(self, router, message):
        for used in range(200_001, 260_000, 3_000):
            result = router.route(message, tokens_used=used, region=Region.IN)
            assert result.provider != PREMIUM

    @pytest.mark.parametrize("message", SAMPLE_MESSAGES)
    def test_everyday_never_premium(self, router, message):
        result = router.route(message, tokens_used=0, region=Region.INTL)
        if result.intent == Intent.EVERYDAY:
            assert result.provider != PREMIUM
            assert result.premium_allowed is False

    @pytest.mark.parametrize("message", SAMPLE_MESSAGES)
    def test_deterministic(self, router, message):
        first = router.route(message, tokens_used=50_000, region=Region.IN, user_id="u-42")
        second = router.route(message, tokens_used=50_000, region=Region.IN, user_id="u-42")
        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_independent_routers_agree(self, expert_message):
        a = ProRouter().route(expert_message, tokens_used=10_000, region="INTL")
        b = ProRouter().route(expert_message, tokens_used=10_000, region="INTL")
        assert a.to_dict() == b.to_dict()

    def test_empty_message(self, router):
        result = router.route("", tokens_used=0, region=Region.IN)
        assert result.intent == Intent.EVERYDAY
        assert result.provider in {"gemini-2.5-flash", "mistral-large-3"}


# ═══════════════════════════════════════════════════════════════
# 3. PROFESSIONAL ROUTING
# ═══════════════════════════════════════════════════════════════

class TestProfessionalRouting:
    """Soft escalation only with plentiful budget and strong signal."""

    def test_soft_escalation(self, router, professional_message):
        result = router.route(professional_message, tokens_used=0, region=Region.INTL)

        assert result.intent == Intent.PROFESSIONAL
        assert result.classification.professional_score >= 8
        assert result.provider == PREMIUM
        assert result.premium_allowed is True
        assert result.metadata.soft_escalation_triggered is True

    def test_budget_pressure_keeps_mid_tier(self, router, professional_message):
        result = router.route(professional_message, tokens_used=150_000, region=Region.IN)

        assert result.intent == Intent.PROFESSIONAL
        assert result.premium_allowed is False
        assert result.metadata.soft_escalation_triggered is False
        assert result.metadata.fallback_applied is False
        bucket = routing_hash(professional_message)
        expected = "mistral-large-3" if bucket < 70 else "gemini-2.5-pro"
        assert result.provider == expected

    def test_weak_professional_signal_stays_mid_tier(self, router):
        result = router.route("Let's plan the team offsite and agenda", tokens_used=0,
                              region=Region.INTL)
        assert result.classification.professional_score < 8
        assert result.provider != PREMIUM
        assert result.metadata.soft_escalation_triggered is False


# ═══════════════════════════════════════════════════════════════
# 4. SESSIONS
# ═══════════════════════════════════════════════════════════════

class TestSessions:
    """Follow-up deltas and intent locking."""

    def test_follow_up_on_locked_session(self, router, expert_message):
        result = router.route(
            expert_message,
            tokens_used=0,
            region=Region.INTL,
            turn_number=2,
            session_intent=Intent.EXPERT,
            session_intent_locked=True,
        )
        assert result.is_follow_up is True
        assert result.delta_prompt == FOLLOW_UP_DELTAS[Intent.EXPERT]

    def test_unlocked_second_turn_is_not_follow_up(self, router, expert_message):
        result = router.route(expert_message, tokens_used=0, region=Region.INTL, turn_number=2)
        assert result.is_follow_up is False

    def test_locked_session_holds_intent(self, router):
        result = router.route(
            "hi, how are you",
            tokens_used=0,
            region=Region.INTL,
            turn_number=3,
            session_intent=Intent.EXPERT,
            session_intent_locked=True,
        )
        assert result.intent == Intent.EXPERT
        assert result.classification.hysteresis_applied is True
        assert result.provider == PREMIUM

    def test_should_lock(self, router, expert_message):
        result = router.route(expert_message, tokens_used=0, region=Region.INTL)
        assert result.should_lock is True
        assert router.route("blue table", 0, Region.IN).should_lock is False


# ═══════════════════════════════════════════════════════════════
# 5. AUDIT & CONFIG
# ═══════════════════════════════════════════════════════════════

class TestAudit:
    """Structured output and runtime updates."""

    def test_to_dict_is_json_safe(self, router, expert_message):
        result = router.route(expert_message, tokens_used=205_000, region=Region.IN)
        payload = json.loads(json.dumps(result.to_dict()))

        assert payload["provider"] == "gemini-2.5-pro"
        assert payload["intent"] == "expert"
        assert payload["metadata"]["fallback_reason"] == "gpt_cap_reached"
        assert payload["metadata"]["cap_limit"] == 220_000
        assert 0 <= payload["metadata"]["routing_hash"] <= 99

    def test_estimated_cost(self, router, expert_message):
        result = router.route(expert_message, tokens_used=0, region=Region.INTL)
        assert result.estimated_cost == pytest.approx(result.estimated_tokens / 1_000_000 * 850)

    def test_nudge_detected(self, router):
        result = router.route("Which one should I choose for dinner?", 0, Region.IN)
        assert result.nudge is not None
        assert result.to_dict()["nudge"] == "decide"

    def test_custom_caps(self, expert_message):
        settings = RouterSettings(budget=BudgetPolicy(caps={"IN": 50_000, "INTL": 650_000}))
        result = ProRouter(settings).route(expert_message, tokens_used=31_000, region=Region.IN)
        assert result.metadata.tokens_remaining == 19_000
        assert result.provider != PREMIUM

    def test_runtime_keyword_append(self, router):
        before = router.classify("kubernetes rollout")
        router.keywords.append(Intent.EXPERT, WeightClass.HIGH, ["kubernetes"])
        after = router.classify("kubernetes rollout")

        assert before.raw_scores["expert"] == 0
        assert after.raw_scores["expert"] == 3
