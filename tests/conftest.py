import json

import pytest
from fastapi.testclient import TestClient

from app.modules.generation.client import QUALITY_FAST
from app.modules.generation.retry import RetryPolicy
from app.modules.generation.service import LearningContentGenerator
from app.modules.wizard.models import ContentInput
from app.modules.wizard.state import WizardSession
from app.modules.wizard.store import MemoryStateStore


class ScriptedCompleter:
    """Plays back a list of replies; an exception instance in the list is raised."""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.prompts = []
        self.qualities = []

    async def complete(self, prompt, *, quality=QUALITY_FAST):
        self.prompts.append(prompt)
        self.qualities.append(quality)
        if not self.replies:
            raise AssertionError("ScriptedCompleter ran out of replies")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


class RecordedSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class BrokenStore:
    def load(self, key):
        raise OSError("disk unavailable")

    def save(self, key, payload):
        raise OSError("disk unavailable")

    def delete(self, key):
        raise OSError("disk unavailable")


@pytest.fixture
def memory_store():
    return MemoryStateStore()


@pytest.fixture
def broken_store():
    return BrokenStore()


@pytest.fixture
def session(memory_store):
    return WizardSession.open(memory_store)


@pytest.fixture
def completer():
    return ScriptedCompleter()


@pytest.fixture
def recorded_sleep():
    return RecordedSleep()


@pytest.fixture
def policy():
    return RetryPolicy(max_retries=3, base_delay=1.0, jitter=1.0, timeout=5.0)


@pytest.fixture
def generator(completer, policy, recorded_sleep):
    return LearningContentGenerator(
        completer, policy=policy, sleep=recorded_sleep, rand=lambda: 0.5
    )


@pytest.fixture
def content():
    return ContentInput(
        subject_text="Photosynthesis converts light energy into chemical energy in chloroplasts.",
        level="VWO",
    )


@pytest.fixture
def client(memory_store, generator):
    import main

    app = main.create_app(store=memory_store, generator=generator)
    return TestClient(app)


@pytest.fixture
def flashcards_json():
    return json.dumps(
        {
            "flashcards": [
                {"front": "What is photosynthesis?", "back": "Turning light into chemical energy"},
                {"front": "Where does it happen?", "back": "In the chloroplasts"},
            ]
        }
    )


@pytest.fixture
def quiz_json():
    return json.dumps(
        {
            "quiz": [
                {
                    "question": "Which organelle hosts photosynthesis?",
                    "options": ["Mitochondrion", "Chloroplast", "Nucleus"],
                    "correctAnswer": 1,
                }
            ]
        }
    )


@pytest.fixture
def theory_json():
    return json.dumps(
        {
            "theory": {
                "orientation": "Why plants need light.",
                "concepts": [
                    {"title": "Chlorophyll", "definition": "Green pigment", "metaphor": "A solar panel"},
                    {"definition": "Sugar made from CO2", "metaphor": "A bakery"},
                ],
                "connections": "Pigments capture light that drives sugar production.",
                "application": {"example": "A houseplant by the window", "steps": ["Light", "Water", "Sugar"]},
                "essence": ["Light in", "Sugar out"],
            }
        }
    )
