from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from app.modules.tutor.models import ChatMessage
from app.modules.wizard.models import (
    ChatbotConfig,
    EducationLevel,
    Flashcard,
    ModuleName,
    QuizQuestion,
    TheorySection,
    WizardState,
)


class StateResponse(BaseModel):
    state: WizardState
    can_proceed: bool = Field(
        ..., description="Whether step 1 has enough input to move on"
    )


class ContentUpdateRequest(BaseModel):
    subject_text: Optional[str] = None
    didactics: Optional[str] = None
    level: Optional[EducationLevel] = None


class UploadResponse(BaseModel):
    filename: str
    size: int
    file_type: str
    content: str
    word_count: int
    character_count: int
    state: WizardState


class GeneratedUpdateRequest(BaseModel):
    chatbot: Optional[ChatbotConfig] = None
    flashcards: Optional[list[Flashcard]] = None
    theory_overview: Optional[list[TheorySection]] = None
    quiz: Optional[list[QuizQuestion]] = None


class FlashcardCreateRequest(BaseModel):
    front: str = ""
    back: str = ""


class FlashcardUpdateRequest(BaseModel):
    front: Optional[str] = None
    back: Optional[str] = None


class QuestionUpdateRequest(BaseModel):
    question: Optional[str] = None
    options: Optional[list[str]] = Field(default=None, min_length=3, max_length=3)
    correct_answer: Optional[int] = Field(default=None, ge=0, le=2)


class TheorySectionUpdateRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


class GenerateResponse(BaseModel):
    kind: ModuleName
    count: int
    flashcards: list[Flashcard] = Field(default_factory=list)
    quiz: list[QuizQuestion] = Field(default_factory=list)
    theory_overview: list[TheorySection] = Field(default_factory=list)


class TutorStartResponse(BaseModel):
    chatbot: ChatbotConfig


class TutorMessageRequest(BaseModel):
    message: str = Field(..., description="Latest student turn")
    history: list[ChatMessage] = Field(
        default_factory=list, description="Conversation so far, oldest first"
    )


class TutorMessageResponse(BaseModel):
    reply: str


class QuizScoreRequest(BaseModel):
    answers: dict[str, int] = Field(
        default_factory=dict, description="Question id -> chosen option index"
    )


class FinalEnvironmentResponse(BaseModel):
    first_module: ModuleName
    accepted_modules: list[ModuleName]
    level: EducationLevel
    state: WizardState
