"""Generation call sites: prompt -> completion (with retry) -> parser -> records.

The service owns the user-visible action, so it is where retries happen and
where an empty parse becomes ``EmptyGenerationError``.
"""

from __future__ import annotations

import asyncio
import random
import time
from typing import Callable, Optional

from app.core.errors import EmptyGenerationError, InputValidationError
from app.core.logging import get_logger
from app.modules.generation import parser
from app.modules.generation.client import QUALITY_FAST, TextCompleter
from app.modules.generation.prompts import (
    build_flashcards_prompt,
    build_quiz_prompt,
    build_theory_prompt,
)
from app.modules.generation.retry import RetryPolicy, Sleep, call_with_retry
from app.modules.wizard.models import (
    ContentInput,
    Flashcard,
    ModuleName,
    QuizQuestion,
    TheorySection,
)

logger = get_logger(__name__)

GENERATED_KINDS = (ModuleName.FLASHCARDS, ModuleName.QUIZ, ModuleName.THEORY)


def _stamp() -> int:
    return int(time.time() * 1000)


def to_flashcards(drafts: list[parser.FlashcardDraft]) -> list[Flashcard]:
    ts = _stamp()
    return [
        Flashcard(id=f"card-{ts}-{i}", front=d.front, back=d.back)
        for i, d in enumerate(drafts)
    ]


def to_quiz(drafts: list[parser.QuizDraft]) -> list[QuizQuestion]:
    ts = _stamp()
    return [
        QuizQuestion(
            id=f"question-{ts}-{i}",
            question=d.question,
            options=d.options,
            correct_answer=d.correct_answer,
        )
        for i, d in enumerate(drafts)
    ]


class LearningContentGenerator:
    def __init__(
        self,
        completer: TextCompleter,
        *,
        policy: Optional[RetryPolicy] = None,
        sleep: Sleep = asyncio.sleep,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self.completer = completer
        self.policy = policy or RetryPolicy.from_settings()
        self._sleep = sleep
        self._rand = rand

    async def complete(self, prompt: str, *, action: str, quality: str = QUALITY_FAST) -> str:
        return await call_with_retry(
            lambda: self.completer.complete(prompt, quality=quality),
            action=action,
            policy=self.policy,
            sleep=self._sleep,
            rand=self._rand,
        )

    @staticmethod
    def _require_content(content: ContentInput) -> str:
        text = content.source_text()
        if not text.strip() or not content.level:
            raise InputValidationError("Content and education level are required")
        return text

    async def generate_flashcards(self, content: ContentInput) -> list[Flashcard]:
        text = self._require_content(content)
        raw = await self.complete(
            build_flashcards_prompt(text, content.level), action="Flashcard generation"
        )
        cards = to_flashcards(parser.parse_flashcards(raw))
        if not cards:
            raise EmptyGenerationError("flashcards")
        logger.info(f"Generated {len(cards)} flashcards")
        return cards

    async def generate_quiz(self, content: ContentInput) -> list[QuizQuestion]:
        text = self._require_content(content)
        raw = await self.complete(
            build_quiz_prompt(text, content.level), action="Quiz generation"
        )
        questions = to_quiz(parser.parse_quiz(raw))
        if not questions:
            raise EmptyGenerationError("questions")
        logger.info(f"Generated {len(questions)} quiz questions")
        return questions

    async def generate_theory(self, content: ContentInput) -> list[TheorySection]:
        text = self._require_content(content)
        raw = await self.complete(
            build_theory_prompt(text, content.level), action="Theory generation"
        )
        sections = parser.parse_theory(raw)
        if not sections:
            raise EmptyGenerationError("theory content")
        logger.info(f"Generated {len(sections)} theory sections")
        return sections
