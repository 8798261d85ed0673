"""Pydantic models for the learning-environment wizard.

The aggregate ``WizardState`` is what gets serialized to the state store.
Uploaded file handles are excluded from serialization; only their extracted
text (``uploaded_file_contents``) survives a persist/rehydrate cycle.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Optional

from pydantic import BaseModel, Field


DEFAULT_DIDACTICS = (
    "You are an expert tutor who explains complex concepts clearly and step by "
    "step. You adapt your explanation to the learner's level and use concrete "
    "examples and analogies to make abstract concepts accessible. You structure "
    "your explanation logically: first the big picture, then the details. You "
    "regularly check understanding by giving short summaries and asking whether "
    "everything is clear. For difficult topics you break the material into "
    "manageable parts and build up knowledge systematically. Pedagogically you "
    "create a safe learning environment in which making mistakes is a natural "
    "part of learning. You approach every learner with patience, respect and "
    "genuine interest in their development. Through positive reinforcement and "
    "emphasis on growth you build confidence and encourage a growth mindset in "
    "which challenges are opportunities to learn. You acknowledge different "
    "learning styles and backgrounds, encourage self-reflection and "
    "metacognition, and connect the material to the learner's personal goals "
    "and interests to foster intrinsic motivation."
)


class EducationLevel(str, Enum):
    """Dutch schooling tiers, elementary (PO) through university (UNI)."""

    PO = "PO"
    VMBO = "VMBO"
    HAVO = "HAVO"
    VWO = "VWO"
    MBO = "MBO"
    HBO = "HBO"
    UNI = "UNI"


class WizardStep(IntEnum):
    CONTENT_INPUT = 1
    TUTOR_PREVIEW = 2
    FLASHCARDS = 3
    THEORY = 4
    QUIZ = 5
    FINAL_REVIEW = 6


FIRST_STEP = int(WizardStep.CONTENT_INPUT)
LAST_STEP = int(WizardStep.FINAL_REVIEW)


class ModuleName(str, Enum):
    CHATBOT = "chatbot"
    FLASHCARDS = "flashcards"
    THEORY = "theory"
    QUIZ = "quiz"


class SectionKind(str, Enum):
    ORIENTATION = "orientation"
    CONCEPT = "concept"
    CONNECTIONS = "connections"
    APPLICATION = "application"
    ESSENCE = "essence"


class UploadedFile(BaseModel):
    """Binary handle of an uploaded document; never persisted."""

    filename: str
    size: int = 0
    data: bytes = b""


class ContentInput(BaseModel):
    subject_text: str = ""
    uploaded_files: list[UploadedFile] = Field(default_factory=list, exclude=True)
    uploaded_file_contents: list[str] = Field(default_factory=list)
    didactics: str = DEFAULT_DIDACTICS
    level: EducationLevel = EducationLevel.HBO

    def source_text(self) -> str:
        """Text the generators work from: typed text, else the uploads."""
        return self.subject_text or "\n\n".join(self.uploaded_file_contents)


class ChatbotConfig(BaseModel):
    prompt: str
    welcome_message: str
    is_accepted: bool = False


class Flashcard(BaseModel):
    id: str
    front: str = ""
    back: str = ""


class QuizQuestion(BaseModel):
    """A multiple-choice question with exactly three options."""

    id: str
    question: str = ""
    options: list[str] = Field(
        default_factory=lambda: ["", "", ""], min_length=3, max_length=3
    )
    correct_answer: int = Field(default=0, ge=0, le=2)


class TheorySection(BaseModel):
    id: str
    title: str
    content: str
    kind: SectionKind


class GeneratedContent(BaseModel):
    chatbot: Optional[ChatbotConfig] = None
    flashcards: list[Flashcard] = Field(default_factory=list)
    theory_overview: list[TheorySection] = Field(default_factory=list)
    quiz: list[QuizQuestion] = Field(default_factory=list)


class WizardState(BaseModel):
    current_step: int = Field(default=FIRST_STEP, ge=FIRST_STEP, le=LAST_STEP)
    content: ContentInput = Field(default_factory=ContentInput)
    generated: GeneratedContent = Field(default_factory=GeneratedContent)
    accepted_modules: list[ModuleName] = Field(default_factory=list)
    is_complete: bool = False


class QuizScore(BaseModel):
    correct: int = 0
    total: int = 0
