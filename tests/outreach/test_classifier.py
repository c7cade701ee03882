import pytest

from leadgen.outreach.classifier import INTENT_KEYWORDS, Intent, classify_intent


@pytest.mark.parametrize("body, expected", [
    ("Please unsubscribe me, but maybe call later", Intent.UNSUBSCRIBE),
    ("Sounds good, let's schedule a call", Intent.MEETING_REQUEST),
    ("How much does this cost?", Intent.QUESTION),
    ("Not interested, thanks", Intent.NOT_INTERESTED),
    ("Sure, happy to hear more. Yes!", Intent.INTERESTED),
    ("I am out of office until Monday", Intent.OUT_OF_OFFICE),
    ("Thanks for the note.", Intent.NEUTRAL),
    ("", Intent.NEUTRAL),
])
def test_classify_examples(body, expected):
    assert classify_intent(body) == expected


def test_classify_is_case_insensitive():
    assert classify_intent("PLEASE STOP EMAILING") == Intent.UNSUBSCRIBE
    assert classify_intent("Tell Me More") == Intent.INTERESTED


def test_classify_none_body_is_neutral():
    assert classify_intent(None) == Intent.NEUTRAL


def test_unsubscribe_wins_over_every_other_category():
    for intent, keywords in INTENT_KEYWORDS[1:]:
        for keyword in keywords:
            body = f"{keyword} ... but please don't email me again"
            assert classify_intent(body) == Intent.UNSUBSCRIBE, (intent, keyword)


def test_opt_out_mentioning_a_call_is_unsubscribe():
    assert classify_intent("Call me before you stop? No - just stop.") == Intent.UNSUBSCRIBE


def test_meeting_request_outranks_question_and_interest():
    assert classify_intent("Interested! Can you book something?") == Intent.MEETING_REQUEST


def test_question_outranks_interest():
    assert classify_intent("Yes, what is the pricing?") == Intent.QUESTION


def test_classification_is_repeatable():
    body = "Sounds good - what is your pricing?"
    results = {classify_intent(body) for _ in range(5)}
    assert results == {Intent.QUESTION}


def test_intent_values_are_stable_strings():
    assert Intent.NOT_INTERESTED.value == "not_interested"
    assert Intent("meeting_request") is Intent.MEETING_REQUEST
