import asyncio
from typing import Any, Dict, List

import pytest

import gemini_wrapper
from storyboard_studio.artifact import Character, Scene


@pytest.fixture(autouse=True)
def _env(monkeypatch, tmp_path):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.setenv("LLM_LOG_PATH", str(tmp_path / "llm_log.txt"))


def run(coro):
    return asyncio.run(coro)


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


def text_response(text: str) -> Dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def inline_response(data: str, mime_type: str = "image/png") -> Dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"inlineData": {"mimeType": mime_type, "data": data}}]}}]}


class FakeGemini:
    """Queue of canned generateContent responses (dicts) or exceptions."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls: List[Dict[str, Any]] = []

    async def __call__(self, model, contents, generation_config=None, api_key=None, logging=True, _caller=""):
        self.calls.append({"model": model, "contents": contents, "generation_config": generation_config})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def roster():
    return [
        Character(id="c1", name="Alice", description="hero", visual_prompt="silver hair, blue eyes, black tactical jacket"),
        Character(id="c2", name="Bob", description="sidekick", visual_prompt="red cap, freckles, denim overalls", default_voice="Puck"),
    ]


@pytest.fixture
def factory_scene():
    return Scene(id="s1", name="Old Factory", description="abandoned", visual_prompt="rusty pipes, dim yellow emergency light, puddles")
