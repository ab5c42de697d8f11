"""Intent-specific delta prompts.

A delta is a short instruction fragment appended after the shared
base system prompt. First turns get the full fragment, an optional
sub-domain extension and a rotating stylistic "touch". Follow-up
turns on a locked session get a compressed fragment only.

The touch is picked by hashing the message text. It exists purely
for perceived variety and has no influence on dispatch.
"""

import re

from prorouter.routing.dispatch import stable_hash
from prorouter.routing.keywords import Intent

FIRST_TURN_DELTAS: dict[Intent, str] = {
    Intent.EVERYDAY: "Answer directly and concisely.",
    Intent.PROFESSIONAL: (
        "This is a professional decision-oriented query.\n"
        "Offer clear options and reasoning.\n"
        "Focus on practicality and actionable insights.\n"
        "Structure your response for easy decision-making."
    ),
    Intent.EXPERT: (
        "This is a high-stakes professional query requiring deep analysis.\n"
        "Analyze trade-offs, risks, and long-term impact.\n"
        "Consider edge cases and potential pitfalls.\n"
        "Avoid generic advice - be precise and specific.\n"
        "Structure your response with clear reasoning.\n"
        "Challenge assumptions where appropriate.\n"
        "Provide actionable recommendations with rationale."
    ),
}

FOLLOW_UP_DELTAS: dict[Intent, str] = {
    Intent.EVERYDAY: "Answer directly.",
    Intent.PROFESSIONAL: (
        "Continue with practical options.\n"
        "Address only what is new."
    ),
    Intent.EXPERT: (
        "Continue the analysis.\n"
        "Focus only on new information or questions.\n"
        "Avoid repeating earlier reasoning unless necessary."
    ),
}

# Used for EXPERT when the premium provider is capped out
EXPERT_FALLBACK_DELTA = (
    "This is a complex professional query.\n"
    "Provide thorough analysis within practical bounds.\n"
    "Focus on the most critical factors.\n"
    "Highlight key trade-offs and recommendations."
)

ROTATION_TOUCHES: dict[Intent, tuple[str, ...]] = {
    Intent.EVERYDAY: (
        "Keep it warm and light.",
        "A friendly tone works best here.",
        "Be natural, like a helpful friend.",
        "Short and upbeat is perfect.",
    ),
    Intent.PROFESSIONAL: (
        "Lead with the recommendation.",
        "Use a crisp, consultant-style tone.",
        "Close with a clear next step.",
        "Prefer bullets over long paragraphs.",
    ),
    Intent.EXPERT: (
        "State your key assumptions up front.",
        "Quantify where you reasonably can.",
        "Flag the single biggest risk explicitly.",
        "End with a decisive recommendation.",
    ),
}

# Sub-domain extensions, appended (never substituted) on first turns
EXTENSIONS: dict[Intent, list[tuple[str, re.Pattern, str]]] = {
    Intent.EXPERT: [
        (
            "architecture",
            re.compile(r"architecture|system design|scalab|infrastructure|microservice", re.I),
            "Analyze scalability, maintainability, and performance.\n"
            "Consider failure modes and recovery strategies.\n"
            "Highlight critical decision points and their implications.",
        ),
        (
            "financial",
            re.compile(r"financ|valuation|cash flow|investment|\broi\b|portfolio", re.I),
            "Provide detailed quantitative analysis where possible.\n"
            "Consider risk factors and sensitivity analysis.\n"
            "Offer scenario-based recommendations.",
        ),
        (
            "legal",
            re.compile(r"\blegal\b|\blaw\b|contract clause|liabilit|regulat|compliance", re.I),
            "Highlight potential compliance considerations.\n"
            "Note where professional legal advice is recommended.\n"
            "Focus on risk awareness without providing legal advice.",
        ),
    ],
    Intent.PROFESSIONAL: [
        (
            "strategy",
            re.compile(r"strateg|roadmap|go-to-market|competit|market entry", re.I),
            "Consider market dynamics and competitive positioning.\n"
            "Offer phased recommendations with clear milestones.",
        ),
        (
            "technical",
            re.compile(r"\bapi\b|database|deploy|server|\bcode\b|software", re.I),
            "Balance technical depth with business practicality.\n"
            "Highlight implementation considerations.",
        ),
        (
            "creative",
            re.compile(r"campaign|tagline|slogan|brand|creative|content", re.I),
            "Offer multiple creative directions with rationale.\n"
            "Balance innovation with feasibility.",
        ),
    ],
}

# Rough token cost of each fragment, for prompt budgeting
TOKEN_ESTIMATES = {
    (Intent.EVERYDAY, False): 10,
    (Intent.EVERYDAY, True): 5,
    (Intent.PROFESSIONAL, False): 35,
    (Intent.PROFESSIONAL, True): 12,
    (Intent.EXPERT, False): 55,
    (Intent.EXPERT, True): 20,
}


def is_follow_up(turn_number: int, session_intent_locked: bool) -> bool:
    """Follow-up deltas apply after the first turn of a locked session."""
    return turn_number > 1 and session_intent_locked


class DeltaPromptSelector:
    """Chooses the delta fragment for a classified message."""

    def __init__(self, touches: dict[Intent, tuple[str, ...]] | None = None):
        self.touches = touches or ROTATION_TOUCHES

    def delta(
        self,
        intent: Intent,
        message: str | None,
        is_follow_up: bool = False,
        cap_reached: bool = False,
    ) -> str:
        """Build the delta prompt.

        Args:
            intent: Classified intent.
            message: The user's message (drives extension and touch choice).
            is_follow_up: Compress for a follow-up turn.
            cap_reached: Premium cap exhausted. EXPERT uses its fallback text,
                on follow-up turns as well.
        """
        intent = Intent(intent)
        message = message or ""

        if intent == Intent.EXPERT and cap_reached:
            if is_follow_up:
                return EXPERT_FALLBACK_DELTA
            parts = [EXPERT_FALLBACK_DELTA]
        elif is_follow_up:
            return FOLLOW_UP_DELTAS[intent]
        else:
            parts = [FIRST_TURN_DELTAS[intent]]

        extension = self._match_extension(intent, message)
        if extension:
            parts.append(extension[1])

        touch = self.touch(intent, message)
        if touch:
            parts.append(touch)

        return "\n".join(parts)

    def touch(self, intent: Intent, message: str | None) -> str:
        """Rotating stylistic phrase for a message."""
        variants = self.touches.get(Intent(intent), ())
        if not variants:
            return ""
        return variants[abs(stable_hash(message or "")) % len(variants)]

    def extension_for(self, intent: Intent, message: str | None) -> str | None:
        """Name of the first matching sub-domain extension, if any."""
        extension = self._match_extension(Intent(intent), message or "")
        return extension[0] if extension else None

    @staticmethod
    def token_estimate(intent: Intent, is_follow_up: bool = False) -> int:
        return TOKEN_ESTIMATES.get((Intent(intent), is_follow_up), 25)

    @staticmethod
    def _match_extension(intent: Intent, message: str) -> tuple[str, str] | None:
        for name, pattern, text in EXTENSIONS.get(intent, []):
            if pattern.search(message):
                return name, text
        return None
