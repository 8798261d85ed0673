"""Wizard module exports."""

from .models import (
    ContentInput,
    EducationLevel,
    Flashcard,
    GeneratedContent,
    ModuleName,
    QuizQuestion,
    SectionKind,
    TheorySection,
    WizardState,
    WizardStep,
)
from .state import WizardManager, WizardSession, can_proceed_from_content
from .store import MemoryStateStore, SqlStateStore, StateStore

__all__ = [
    "ContentInput",
    "EducationLevel",
    "Flashcard",
    "GeneratedContent",
    "ModuleName",
    "QuizQuestion",
    "SectionKind",
    "TheorySection",
    "WizardState",
    "WizardStep",
    "WizardManager",
    "WizardSession",
    "can_proceed_from_content",
    "MemoryStateStore",
    "SqlStateStore",
    "StateStore",
]
