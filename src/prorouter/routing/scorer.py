"""Intent scoring for Pro-tier routing.

Buckets a message into EVERYDAY, PROFESSIONAL or EXPERT using the
weighted keyword tables. Everything is local and lexical: no model
calls, zero added latency, zero token cost.

Pipeline:
1. Case-fold the message
2. Sum keyword weights per tier
3. Add the short-message heuristic to the everyday score, but only
   when no expert keyword matched (terse expert commands like
   "optimize this query" must not be demoted)
4. Dampen expert and professional scores by everyday signal
5. Resolve intent: signal floor, expert bias rule, ordered argmax
6. Session hysteresis: keep a locked intent unless confidence is high
"""

import logging
import math
from dataclasses import dataclass, field

from prorouter.config import ClassifierTuning
from prorouter.routing.keywords import Intent, KeywordRegistry, KeywordTable, default_table

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassificationResult:
    """Result of classifying a message."""
    intent: Intent
    confidence: int  # 0 to 100
    matched_keywords: frozenset[str] = frozenset()
    bias_applied: bool = False
    raw_scores: dict[str, float] = field(default_factory=dict)
    adjusted_scores: dict[str, float] = field(default_factory=dict)
    hysteresis_applied: bool = False
    lock_threshold: int = 70

    @property
    def should_lock(self) -> bool:
        """Hint for the caller: lock this intent in the session."""
        return self.confidence >= self.lock_threshold

    @property
    def professional_score(self) -> float:
        return self.adjusted_scores.get(Intent.PROFESSIONAL.value, 0.0)

    def explain(self) -> str:
        """Human-readable summary of the decision."""
        scores = ", ".join(f"{k}={v:g}" for k, v in self.adjusted_scores.items())
        flags = []
        if self.bias_applied:
            flags.append("bias")
        if self.hysteresis_applied:
            flags.append("session-lock")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        return f"Intent={self.intent.value} confidence={self.confidence} ({scores}){suffix}"


@dataclass(frozen=True)
class _Resolution:
    intent: Intent
    confidence: int
    bias_applied: bool = False


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (not banker's rounding)."""
    return int(math.floor(value + 0.5))


class IntentClassifier:
    """Keyword-weighted intent classifier.

    Stateless apart from the injected keyword source, so parallel
    instances with distinct tables are safe (handy in tests).

    Usage:
        classifier = IntentClassifier()
        result = classifier.classify("Do a root cause analysis of the outage")
        # result.intent = Intent.EXPERT
    """

    def __init__(
        self,
        keywords: KeywordTable | KeywordRegistry | None = None,
        tuning: ClassifierTuning | None = None,
    ):
        self.keywords = keywords or default_table()
        self.tuning = tuning or ClassifierTuning()

    def classify(
        self,
        message: str | None,
        session_intent: Intent | None = None,
        session_intent_locked: bool = False,
        remaining_premium_tokens: int | None = None,
    ) -> ClassificationResult:
        """Classify a message.

        Args:
            message: The user's message. None or empty degrades to EVERYDAY.
            session_intent: Intent locked for this conversation, if any.
            session_intent_locked: Whether the session lock is active.
            remaining_premium_tokens: Accepted for interface parity;
                classification does not depend on budget.

        Returns:
            ClassificationResult (never raises).
        """
        t = self.tuning
        message = message or ""
        text = message.casefold()
        table = self.keywords.snapshot()

        expert, expert_hits = table.score(text, Intent.EXPERT)
        professional, professional_hits = table.score(text, Intent.PROFESSIONAL)
        everyday, everyday_hits = table.score(text, Intent.EVERYDAY)

        if expert == 0:
            everyday += self._length_penalty(len(message))

        adjusted_expert = max(0.0, expert - t.expert_damping * everyday)
        adjusted_professional = max(0.0, professional - t.professional_damping * everyday)

        resolution = self.resolve(adjusted_expert, adjusted_professional, everyday)
        intent, confidence, hysteresis = self.apply_hysteresis(
            resolution.intent,
            resolution.confidence,
            session_intent,
            session_intent_locked,
        )

        return ClassificationResult(
            intent=intent,
            confidence=confidence,
            matched_keywords=frozenset(expert_hits + professional_hits + everyday_hits),
            bias_applied=resolution.bias_applied,
            raw_scores={
                Intent.EXPERT.value: expert,
                Intent.PROFESSIONAL.value: professional,
                Intent.EVERYDAY.value: everyday,
            },
            adjusted_scores={
                Intent.EXPERT.value: adjusted_expert,
                Intent.PROFESSIONAL.value: adjusted_professional,
                Intent.EVERYDAY.value: everyday,
            },
            hysteresis_applied=hysteresis,
            lock_threshold=t.lock_threshold,
        )

    def quick_classify(self, message: str | None) -> Intent:
        """Return just the intent for a message."""
        return self.classify(message).intent

    def resolve(
        self,
        adjusted_expert: float,
        adjusted_professional: float,
        everyday: float,
    ) -> _Resolution:
        """Resolve intent and confidence from (adjusted) tier scores.

        Special rules:
        - Total signal below the floor -> EVERYDAY at fixed confidence
        - Strong expert signal that clearly beats professional -> EXPERT
        - Otherwise argmax, ties going EXPERT > PROFESSIONAL > EVERYDAY
        """
        t = self.tuning
        total = adjusted_expert + adjusted_professional + everyday

        if total < t.min_signal:
            return _Resolution(Intent.EVERYDAY, t.insufficient_signal_confidence)

        top = max(adjusted_expert, adjusted_professional, everyday)
        confidence = round_half_up(100 * top / (total + t.smoothing))

        if (
            adjusted_expert >= t.bias_min_expert
            and adjusted_expert > t.bias_ratio * adjusted_professional
        ):
            return _Resolution(
                Intent.EXPERT,
                max(confidence, t.bias_confidence_floor),
                bias_applied=True,
            )

        if adjusted_expert >= top:
            return _Resolution(Intent.EXPERT, confidence)
        if adjusted_professional >= top:
            return _Resolution(Intent.PROFESSIONAL, confidence)
        return _Resolution(Intent.EVERYDAY, max(confidence, t.everyday_confidence_floor))

    def apply_hysteresis(
        self,
        intent: Intent,
        confidence: int,
        session_intent: Intent | str | None,
        session_intent_locked: bool,
    ) -> tuple[Intent, int, bool]:
        """Keep a session-locked intent unless fresh confidence is high.

        Returns:
            (intent, confidence, overridden)
        """
        t = self.tuning
        if (
            session_intent_locked
            and session_intent is not None
            and confidence < t.hysteresis_override_below
        ):
            try:
                locked_intent = Intent(session_intent)
            except ValueError:
                logger.warning(f"Unknown session intent '{session_intent}', ignoring lock")
                return intent, confidence, False
            return (
                locked_intent,
                max(confidence, t.hysteresis_confidence_floor),
                True,
            )
        return intent, confidence, False

    def _length_penalty(self, length: int) -> int:
        t = self.tuning
        if length < t.short_message_chars:
            return t.short_message_penalty
        if length < t.medium_message_chars:
            return t.medium_message_penalty
        return 0
