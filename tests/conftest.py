"""Shared fixtures: a scripted provider and sample documents."""

import json
import threading
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from contracts.document import ProjectDocument
from providers.base import LLMProvider, LLMResponse

Reply = Union[str, BaseException]


class ScriptedProvider(LLMProvider):
    """Provider that returns canned replies and records every call.

    ``replies`` are consumed in order; ``responder`` (called with the
    instruction) is used once they run out. An exception in either place is
    raised instead of returned.
    """

    def __init__(
        self,
        replies: Optional[List[Reply]] = None,
        responder: Optional[Callable[[str], Reply]] = None,
        native_schema: bool = False,
    ):
        self.replies = list(replies or [])
        self.responder = responder
        self.native_schema = native_schema
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "scripted"

    @property
    def default_model(self) -> str:
        return "scripted-model"

    @property
    def supports_native_schema(self) -> bool:
        return self.native_schema

    def complete(
        self,
        system_prompt,
        user_message,
        model=None,
        max_tokens=4096,
        response_schema=None,
        json_mode=False,
    ) -> LLMResponse:
        with self._lock:
            self.calls.append({
                "system_prompt": system_prompt,
                "instruction": user_message,
                "model": model,
                "max_tokens": max_tokens,
                "response_schema": response_schema,
                "json_mode": json_mode,
            })
            reply = self.replies.pop(0) if self.replies else self.responder(user_message)
        if isinstance(reply, BaseException):
            raise reply
        return LLMResponse(
            content=reply,
            input_tokens=100,
            output_tokens=50,
            model=self.default_model,
            provider=self.name,
            cost=0.01,
        )


def as_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


@pytest.fixture
def empty_document():
    return ProjectDocument().to_data()


@pytest.fixture
def sample_document():
    """Partly authored English proposal with a fixed schedule."""
    document = ProjectDocument().to_data()
    document["problemAnalysis"]["coreProblem"] = {
        "title": "Low uptake of electric buses in mid-sized cities",
        "description": "Only 6% of urban buses in Central Europe were electric in 2023 (Eurostat, 2024).",
    }
    document["projectIdea"].update({
        "projectTitle": "Electric Public Transport Transition in Mid-Sized Central European Cities",
        "projectAcronym": "EBUS",
        "mainAim": "To accelerate the transition of mid-sized cities to electric public transport.",
        "startDate": "2026-01-01",
        "durationMonths": 24,
    })
    document["risks"] = [
        {
            "id": "RISK1",
            "category": "technical",
            "title": "Delayed vehicle delivery",
            "description": "Manufacturers may not deliver the pilot buses on time.",
            "likelihood": "medium",
            "impact": "high",
            "mitigation": "Framework contracts with two suppliers are signed in the first quarter.",
        },
    ]
    return document
