"""Tutor chatbot: persona prompt assembly and conversational replies.

Every turn is a single prompt string (persona + subject content + level +
transcript + latest student turn) sent with the ``smart`` quality hint.
"""

from __future__ import annotations

from typing import Iterable

from app.core.errors import InputValidationError
from app.modules.generation.client import QUALITY_SMART
from app.modules.generation.prompts import (
    build_reply_message,
    build_start_message,
    build_tutor_prompt,
)
from app.modules.generation.service import LearningContentGenerator
from app.modules.tutor.models import ChatMessage, TutorStart
from app.modules.wizard.models import ContentInput


class TutorService:
    def __init__(self, generator: LearningContentGenerator) -> None:
        self.generator = generator

    @staticmethod
    def persona_prompt(content: ContentInput) -> str:
        return build_tutor_prompt(content.didactics, content.source_text(), content.level)

    async def start(self, content: ContentInput) -> TutorStart:
        prompt = self.persona_prompt(content)
        welcome = await self.generator.complete(
            build_start_message(prompt), action="Starting the chatbot", quality=QUALITY_SMART
        )
        return TutorStart(prompt=prompt, welcome_message=welcome)

    async def reply(
        self, prompt: str, history: Iterable[ChatMessage], message: str
    ) -> str:
        if not message.strip():
            raise InputValidationError("Message is empty")
        turns = [(m.role, m.content) for m in history]
        return await self.generator.complete(
            build_reply_message(prompt, turns, message.strip()),
            action="Sending the message",
            quality=QUALITY_SMART,
        )
