# ===============================================
# tests/conftest.py
# -----------------------------------------------
# Fake model clients shared by the test modules.
# They follow the client interface:
#   complete_json(messages, schema, params) -> dict | None
# ===============================================

import threading

import pytest

from cohorte.generate import FeedbackRequester
from cohorte.pipeline import FeedbackPipeline


class CannedClient:
    """Returns the same payload for every persona and records each call."""

    def __init__(self, payload):
        self.model = "canned"
        self.payload = payload
        self.calls = []
        self._lock = threading.Lock()

    def complete_json(self, messages, schema, params):
        with self._lock:
            self.calls.append({"messages": messages, "schema": schema, "params": params})
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class PerPersonaClient:
    """Picks a payload by the persona name found in the persona card."""

    def __init__(self, by_name, default=None):
        self.model = "per-persona"
        self.by_name = by_name
        self.default = default

    def complete_json(self, messages, schema, params):
        card = messages[1].content
        for name, payload in self.by_name.items():
            if f"Name: {name}\n" in card:
                if isinstance(payload, Exception):
                    raise payload
                return payload
        return self.default


def payload(annotations, liked=True, comment="ok"):
    return {"persona_name": "model-name", "overall": {"comment": comment, "liked": liked}, "annotations": annotations}


@pytest.fixture
def make_payload():
    return payload


@pytest.fixture
def canned_client():
    return CannedClient


@pytest.fixture
def per_persona_client():
    return PerPersonaClient


@pytest.fixture
def make_pipeline():
    def _make(client, max_personas=10, max_text_chars=8000):
        return FeedbackPipeline(
            requester=FeedbackRequester(model_client=client),
            max_personas=max_personas,
            max_text_chars=max_text_chars,
        )
    return _make
