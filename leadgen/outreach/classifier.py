"""Keyword-based reply intent classification."""

from enum import Enum


class Intent(str, Enum):
    UNSUBSCRIBE = "unsubscribe"
    NOT_INTERESTED = "not_interested"
    MEETING_REQUEST = "meeting_request"
    QUESTION = "question"
    INTERESTED = "interested"
    OUT_OF_OFFICE = "out_of_office"
    NEUTRAL = "neutral"


# Evaluated top to bottom; the first category with a matching keyword wins.
INTENT_KEYWORDS: list[tuple[Intent, tuple[str, ...]]] = [
    (Intent.UNSUBSCRIBE, ("unsubscribe", "remove", "stop", "don't email")),
    (Intent.NOT_INTERESTED, ("not interested", "no thanks", "pass", "don't have budget")),
    (Intent.MEETING_REQUEST, ("book", "calendar", "schedule", "meet", "call")),
    (Intent.QUESTION, ("?", "how much", "pricing", "what is", "can you")),
    (Intent.INTERESTED, ("interested", "sounds good", "tell me more", "yes")),
    (Intent.OUT_OF_OFFICE, ("out of office", "ooo", "on vacation", "away until")),
]

# Replies with these intents get a meeting slot suggestion
MEETING_INTENTS = frozenset({Intent.INTERESTED, Intent.QUESTION})


def classify_intent(body: str) -> Intent:
    """Classify the plain-text body of a reply.

    Matching is case-insensitive substring search. Categories overlap in
    practice ("call me before you stop" holds both a meeting keyword and an
    opt-out keyword), so order in INTENT_KEYWORDS decides.
    """
    text = (body or "").lower()

    for intent, keywords in INTENT_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return intent

    return Intent.NEUTRAL
