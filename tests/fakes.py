"""Test doubles shared by the service and API tests."""

from app.agent.llm import Generation

# 0.5 + length + specifics + attribution, no hedging words
HIGH_CONFIDENCE_ANSWER = (
    "According to the 2024 ADA Standards of Care, metformin remains the first-line medication "
    "for Type 2 Diabetes. It lowers HbA1c by roughly 1.5% on average, costs about $4 per month, "
    "and is combined with diet, exercise and regular glucose monitoring for the best long-term outcomes."
)
HIGH_CONFIDENCE_SCORE = 0.9

# 0.5 - hedging
LOW_CONFIDENCE_ANSWER = "It might help, but results are unclear."
LOW_CONFIDENCE_SCORE = 0.3


class FakeGenerator:
    """Replays scripted replies (str or exception) in order; the last one repeats."""

    def __init__(self, *replies) -> None:
        self.replies = list(replies)
        self.calls: list[list[dict[str, str]]] = []

    def generate(self, messages):
        self.calls.append(messages)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return Generation(text=reply, raw={"choices": [{"message": {"content": reply}}]}, model="fake-model")
