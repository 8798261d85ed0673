"""Generation module exports."""

from .client import GeminiCompleter, TextCompleter
from .parser import parse_flashcards, parse_quiz, parse_theory
from .retry import RetryPolicy, call_with_retry
from .service import LearningContentGenerator

__all__ = [
    "GeminiCompleter",
    "TextCompleter",
    "parse_flashcards",
    "parse_quiz",
    "parse_theory",
    "RetryPolicy",
    "call_with_retry",
    "LearningContentGenerator",
]
