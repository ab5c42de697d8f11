"""UI nudge detection.

Spots messages where the user is deciding, looking for next steps,
or overwhelmed, so the frontend can offer a follow-up chip. Pure
regex, checked in priority order DECIDE > ACTION > SIMPLIFY.
"""

import re
from enum import Enum


class NudgeType(str, Enum):
    DECIDE = "decide"
    ACTION = "action"
    SIMPLIFY = "simplify"


DECIDE_MARKERS = re.compile(
    r"should\s+i|which\s+one|recommend|choose\s+between|\bdecide\b|"
    r"better\s+option|what\s+do\s+you\s+think|kya\s+karu|konsa|sahi\s+rahega",
    re.IGNORECASE,
)

ACTION_MARKERS = re.compile(
    r"how\s+do\s+i|how\s+to\b|next\s+step|where\s+do\s+i\s+start|get\s+started|"
    r"first\s+step|kaise\s+karu|shuru\s+karu|steps\s+batao",
    re.IGNORECASE,
)

SIMPLIFY_MARKERS = re.compile(
    r"confused|confusing|overwhelming|complicated|don'?t\s+understand|"
    r"not\s+sure|\blost\b|\bstuck\b|samajh\s+nahi|clear\s+nahi",
    re.IGNORECASE,
)

NUDGE_TEXT = {
    NudgeType.DECIDE: "Want me to help you decide?",
    NudgeType.ACTION: "Want clear next steps?",
    NudgeType.SIMPLIFY: "Want this explained more simply?",
}


def detect_nudge(message: str | None) -> NudgeType | None:
    """Detect the nudge type for a message, if any."""
    if not message:
        return None
    if DECIDE_MARKERS.search(message):
        return NudgeType.DECIDE
    if ACTION_MARKERS.search(message):
        return NudgeType.ACTION
    if SIMPLIFY_MARKERS.search(message):
        return NudgeType.SIMPLIFY
    return None


def nudge_text(nudge: NudgeType | None) -> str:
    if nudge is None:
        return ""
    return NUDGE_TEXT[nudge]
