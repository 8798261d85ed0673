"""Recover flashcards, quiz questions and theory outlines from model text.

Models are asked for a JSON object but do not always produce one. Each parse
function first tries strict extraction (the greedy span from the first ``{``
to the last ``}``), then, for flashcards and quiz questions, falls back to a
line-oriented reading of the raw text. An empty return value means nothing
usable was found; the parser itself never raises for bad model output.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, Field

from app.core.logging import get_logger
from app.modules.wizard.models import SectionKind, TheorySection

logger = get_logger(__name__)

FLASHCARD_LIMIT = 15
QUIZ_LIMIT = 8
QUIZ_OPTION_COUNT = 3

_JSON_SPAN = re.compile(r"\{.*\}", re.DOTALL)
_FRONT_PREFIX = re.compile(r"^.*?front:\s*", re.IGNORECASE)
_BACK_PREFIX = re.compile(r"^.*?back:\s*", re.IGNORECASE)
_QUESTION_START = re.compile(r"^\d+\.\s*")
_OPTION_START = re.compile(r"^[ABC]\)\s*")
_ANSWER_LETTER = re.compile(r"\b([ABC])\b")
_LETTER_AFTER_KEYWORD = re.compile(r"(?i:correct|antwoord)\w*.*?\b([ABC])\b")
_ANSWER_KEYWORDS = ("correct", "antwoord")
_LETTER_INDEX = {"A": 0, "B": 1, "C": 2}


class FlashcardDraft(BaseModel):
    front: str
    back: str


class QuizDraft(BaseModel):
    question: str
    options: list[str]
    correct_answer: int


class TheoryConcept(BaseModel):
    title: Optional[str] = None
    definition: Optional[str] = None
    metaphor: Optional[str] = None


class TheoryApplication(BaseModel):
    example: Optional[str] = None
    steps: list[str] = Field(default_factory=list)


class TheoryOutline(BaseModel):
    orientation: Optional[str] = None
    concepts: list[TheoryConcept] = Field(default_factory=list)
    connections: Optional[str] = None
    application: Optional[TheoryApplication] = None
    essence: list[str] = Field(default_factory=list)


@dataclass
class PartialFlashcard:
    front: Optional[str] = None
    back: Optional[str] = None

    def has_front(self) -> bool:
        return bool(self.front)

    def is_complete(self) -> bool:
        return bool(self.front) and bool(self.back)

    def build(self) -> FlashcardDraft:
        return FlashcardDraft(front=self.front or "", back=self.back or "")


@dataclass
class PartialQuestion:
    question: Optional[str] = None
    options: list[str] = field(default_factory=list)
    correct_answer: Optional[int] = None

    def is_complete(self) -> bool:
        return (
            bool(self.question)
            and len(self.options) == QUIZ_OPTION_COUNT
            and self.correct_answer is not None
        )

    def build(self) -> QuizDraft:
        return QuizDraft(
            question=self.question or "",
            options=list(self.options),
            correct_answer=self.correct_answer or 0,
        )


# Strict extraction -------------------------------------------------------
def extract_json_object(text: str) -> Optional[dict]:
    """Parse the greedy ``{...}`` span of ``text``; None if absent or invalid."""
    match = _JSON_SPAN.search(text or "")
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _valid_answer_index(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        index = value
    elif isinstance(value, float) and value.is_integer():
        index = int(value)
    else:
        return None
    return index if 0 <= index < QUIZ_OPTION_COUNT else None


def _strict_flashcards(data: dict) -> Optional[list[FlashcardDraft]]:
    items = data.get("flashcards")
    if not isinstance(items, list):
        return None
    cards = [
        FlashcardDraft(front=_as_text(item.get("front")), back=_as_text(item.get("back")))
        for item in items
        if isinstance(item, dict)
    ]
    return cards[:FLASHCARD_LIMIT]


def _strict_quiz(data: dict) -> Optional[list[QuizDraft]]:
    items = data.get("quiz")
    if not isinstance(items, list):
        return None
    questions: list[QuizDraft] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        question = item.get("question")
        options = item.get("options")
        index = _valid_answer_index(item.get("correctAnswer"))
        if not isinstance(question, str) or not question.strip():
            continue
        if not isinstance(options, list) or len(options) != QUIZ_OPTION_COUNT:
            continue
        if index is None:
            continue
        questions.append(
            QuizDraft(
                question=question.strip(),
                options=[_as_text(o) for o in options],
                correct_answer=index,
            )
        )
    return questions[:QUIZ_LIMIT]


# Heuristic fallback ------------------------------------------------------
def _content_lines(text: str) -> list[str]:
    return [line.strip() for line in (text or "").split("\n") if line.strip()]


def _after_marker(pattern: re.Pattern, line: str) -> str:
    return pattern.sub("", line, count=1).replace('"', "").strip()


def heuristic_flashcards(text: str) -> list[FlashcardDraft]:
    cards: list[FlashcardDraft] = []
    current = PartialFlashcard()
    for line in _content_lines(text):
        if "front:" in line or "Front:" in line:
            if current.has_front():
                cards.append(current.build())
                current = PartialFlashcard()
            current.front = _after_marker(_FRONT_PREFIX, line)
        elif "back:" in line or "Back:" in line:
            current.back = _after_marker(_BACK_PREFIX, line)
    if current.is_complete():
        cards.append(current.build())
    return cards[:FLASHCARD_LIMIT]


def _answer_letter(line: str) -> Optional[str]:
    """First standalone A/B/C after the keyword, else the last one on the line."""
    match = _LETTER_AFTER_KEYWORD.search(line)
    if match:
        return match.group(1)
    letters = _ANSWER_LETTER.findall(line)
    return letters[-1] if letters else None


def heuristic_quiz(text: str) -> list[QuizDraft]:
    questions: list[QuizDraft] = []
    current: Optional[PartialQuestion] = None
    for line in _content_lines(text):
        if _QUESTION_START.match(line):
            if current is not None and current.is_complete():
                questions.append(current.build())
            current = PartialQuestion(question=_QUESTION_START.sub("", line, count=1).strip())
        elif _OPTION_START.match(line):
            if current is not None:
                current.options.append(_OPTION_START.sub("", line, count=1).strip())
        elif any(k in line.lower() for k in _ANSWER_KEYWORDS):
            letter = _answer_letter(line)
            if current is not None and letter:
                current.correct_answer = _LETTER_INDEX[letter]
    if current is not None and current.is_complete():
        questions.append(current.build())
    return questions[:QUIZ_LIMIT]


# Public entry points -----------------------------------------------------
def parse_flashcards(text: str) -> list[FlashcardDraft]:
    data = extract_json_object(text)
    if data is not None:
        cards = _strict_flashcards(data)
        if cards is not None:
            return cards
    logger.info("No flashcards JSON found; falling back to line parsing")
    return heuristic_flashcards(text)


def parse_quiz(text: str) -> list[QuizDraft]:
    data = extract_json_object(text)
    if data is not None:
        questions = _strict_quiz(data)
        if questions is not None:
            return questions
    logger.info("No quiz JSON found; falling back to line parsing")
    return heuristic_quiz(text)


def _scalar_text(value: Any) -> Optional[str]:
    """Text for a scalar field; None for containers and blanks."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (str, int, float)):
        return str(value).strip() or None
    return None


def _concept(item: Any) -> Optional[TheoryConcept]:
    if isinstance(item, dict):
        concept = TheoryConcept(
            title=_scalar_text(item.get("title")),
            definition=_scalar_text(item.get("definition")),
            metaphor=_scalar_text(item.get("metaphor")),
        )
        if concept.title or concept.definition or concept.metaphor:
            return concept
        return None
    title = _scalar_text(item)
    return TheoryConcept(title=title) if title else None


def _application(value: Any) -> Optional[TheoryApplication]:
    if isinstance(value, dict):
        raw_steps = value.get("steps")
        if not isinstance(raw_steps, list):
            raw_steps = [raw_steps]
        steps = [s for s in (_scalar_text(step) for step in raw_steps) if s]
        example = _scalar_text(value.get("example"))
        if example or steps:
            return TheoryApplication(example=example, steps=steps)
        return None
    example = _scalar_text(value)
    return TheoryApplication(example=example) if example else None


def _essence(value: Any) -> list[str]:
    items = value if isinstance(value, list) else [value]
    return [p for p in (_scalar_text(item) for item in items) if p]


def extract_theory_outline(text: str) -> Optional[TheoryOutline]:
    """Read the ``theory`` object part by part; malformed parts are skipped."""
    data = extract_json_object(text)
    if data is None or not isinstance(data.get("theory"), dict):
        return None
    raw = data["theory"]
    raw_concepts = raw.get("concepts")
    if not isinstance(raw_concepts, list):
        raw_concepts = [raw_concepts]
    outline = TheoryOutline(
        orientation=_scalar_text(raw.get("orientation")),
        concepts=[c for c in (_concept(item) for item in raw_concepts) if c],
        connections=_scalar_text(raw.get("connections")),
        application=_application(raw.get("application")),
        essence=_essence(raw.get("essence")),
    )
    skipped = [
        key
        for key in TheoryOutline.model_fields
        if raw.get(key) not in (None, "", [], {}) and not getattr(outline, key)
    ]
    if skipped:
        logger.info(f"Skipped unreadable theory parts: {', '.join(skipped)}")
    return outline


def _concept_content(concept: TheoryConcept) -> str:
    parts = []
    if concept.definition:
        parts.append(concept.definition)
    if concept.metaphor:
        parts.append(f"Metaphor: {concept.metaphor}")
    return "\n\n".join(parts)


def _application_content(application: TheoryApplication) -> str:
    parts = []
    if application.example:
        parts.append(application.example)
    if application.steps:
        steps = "\n".join(f"{i + 1}. {step}" for i, step in enumerate(application.steps))
        parts.append(f"Steps:\n{steps}")
    return "\n\n".join(parts)


def theory_sections(outline: TheoryOutline) -> list[TheorySection]:
    sections: list[TheorySection] = []
    if outline.orientation:
        sections.append(
            TheorySection(
                id="orientation",
                title="Orientation",
                content=outline.orientation,
                kind=SectionKind.ORIENTATION,
            )
        )
    for i, concept in enumerate(outline.concepts):
        sections.append(
            TheorySection(
                id=f"concept-{i}",
                title=concept.title or f"Concept {i + 1}",
                content=_concept_content(concept),
                kind=SectionKind.CONCEPT,
            )
        )
    if outline.connections:
        sections.append(
            TheorySection(
                id="connections",
                title="Connections",
                content=outline.connections,
                kind=SectionKind.CONNECTIONS,
            )
        )
    if outline.application is not None:
        sections.append(
            TheorySection(
                id="application",
                title="Application",
                content=_application_content(outline.application),
                kind=SectionKind.APPLICATION,
            )
        )
    if outline.essence:
        sections.append(
            TheorySection(
                id="essence",
                title="Essence - remember this...",
                content="\n".join(f"• {point}" for point in outline.essence),
                kind=SectionKind.ESSENCE,
            )
        )
    return sections


def parse_theory(text: str) -> list[TheorySection]:
    """Theory has no line-based fallback: no JSON means no sections."""
    outline = extract_theory_outline(text)
    if outline is None:
        logger.info("No theory JSON found; returning no sections")
        return []
    return theory_sections(outline)
