"""Prompt templates for flashcards, quiz, theory overview and the tutor.

Every generation prompt asks for a JSON object whose top-level key matches
what ``app.modules.generation.parser`` looks for (``flashcards``, ``quiz``,
``theory``). Models are told to answer in the language of the subject text.
"""

from __future__ import annotations

from typing import Iterable

from app.modules.generation.parser import FLASHCARD_LIMIT, QUIZ_LIMIT
from app.modules.wizard.models import EducationLevel


LANGUAGE_RULE = "Write in the same language as the subject content."


def _level(level: EducationLevel | str) -> str:
    return level.value if isinstance(level, EducationLevel) else str(level)


def build_flashcards_prompt(content: str, level: EducationLevel | str) -> str:
    lvl = _level(level)
    return (
        "You are an expert in creating educational flashcards. Generate exactly "
        f"{FLASHCARD_LIMIT} flashcards for the {lvl} level based on the subject "
        "content below.\n\n"
        f"SUBJECT CONTENT:\n{content}\n\n"
        "INSTRUCTIONS:\n"
        f"1. Create exactly {FLASHCARD_LIMIT} flashcards\n"
        "2. Each flashcard has a short question or term on the front and a clear "
        "explanation on the back\n"
        f"3. Match the difficulty to the {lvl} level\n"
        "4. Vary the question types (definition, application, example, ...)\n"
        "5. Use clear, simple language\n"
        "6. Avoid overlap between cards\n"
        f"7. {LANGUAGE_RULE}\n\n"
        "DESIRED OUTPUT FORMAT (JSON):\n"
        "{\n"
        '  "flashcards": [\n'
        '    {"front": "Short question or term", "back": "Clear explanation or answer"}\n'
        "  ]\n"
        "}\n\n"
        "Generate the flashcards now:"
    )


def build_quiz_prompt(content: str, level: EducationLevel | str) -> str:
    lvl = _level(level)
    return (
        "You are an expert in writing educational test questions. Generate "
        f"exactly {QUIZ_LIMIT} multiple-choice questions for the {lvl} level "
        "based on the subject content below.\n\n"
        f"SUBJECT CONTENT:\n{content}\n\n"
        "INSTRUCTIONS:\n"
        f"1. Create exactly {QUIZ_LIMIT} multiple-choice questions\n"
        "2. Each question has exactly 3 answer options (A, B, C)\n"
        f"3. Match the difficulty to the {lvl} level\n"
        "4. Vary the question types (understanding, application, analysis)\n"
        "5. Test the core concepts\n"
        "6. Exactly one answer per question is correct\n"
        "7. Make the wrong answers plausible but clearly wrong\n"
        f"8. Use clear, simple language suitable for {lvl}\n"
        f"9. {LANGUAGE_RULE}\n\n"
        "DESIRED OUTPUT FORMAT (JSON):\n"
        "{\n"
        '  "quiz": [\n'
        "    {\n"
        '      "question": "The question text",\n'
        '      "options": ["Option A", "Option B", "Option C"],\n'
        '      "correctAnswer": 0\n'
        "    }\n"
        "  ]\n"
        "}\n\n"
        "IMPORTANT: correctAnswer is the index (0, 1 or 2) of the right answer "
        "in the options array.\n\n"
        f"Generate the {QUIZ_LIMIT} test questions now:"
    )


def build_theory_prompt(content: str, level: EducationLevel | str) -> str:
    lvl = _level(level)
    return (
        "You are an expert in writing educational theory overviews. Create a "
        f"structured theory overview for the {lvl} level based on the subject "
        "content below.\n\n"
        f"SUBJECT CONTENT:\n{content}\n\n"
        "INSTRUCTIONS:\n"
        "Use EXACTLY this structure:\n"
        "1. ORIENTATION (at most 3 sentences): what will you learn and why does "
        "it matter?\n"
        "2. CORE CONCEPTS (3-5 items): each concept in its own block, a "
        f"definition in language suitable for {lvl}, and a concrete metaphor or "
        "analogy\n"
        "3. CONNECTIONS: how do the concepts relate to each other?\n"
        "4. APPLICATION: one concrete, recognizable example worked out step by "
        "step\n"
        '5. ESSENCE: the core message in 2-3 points ("Remember this above all...")\n'
        f"{LANGUAGE_RULE}\n\n"
        "DESIRED OUTPUT FORMAT (JSON):\n"
        "{\n"
        '  "theory": {\n'
        '    "orientation": "Orientation text",\n'
        '    "concepts": [\n'
        '      {"title": "Concept name", "definition": "Plain definition", '
        '"metaphor": "Concrete metaphor or analogy"}\n'
        "    ],\n"
        '    "connections": "How the concepts relate",\n'
        '    "application": {"example": "Concrete example", '
        '"steps": ["Step 1", "Step 2", "Step 3"]},\n'
        '    "essence": ["Key point 1", "Key point 2", "Key point 3"]\n'
        "  }\n"
        "}\n\n"
        "Generate the theory overview now:"
    )


PROMPT_BUILDERS = {
    "flashcards": build_flashcards_prompt,
    "quiz": build_quiz_prompt,
    "theory": build_theory_prompt,
}


# Tutor ---------------------------------------------------------------------
START_INSTRUCTION = "The student just pressed start. Give your welcome message now."
REPLY_INSTRUCTION = "Respond now as the AI tutor:"


def build_tutor_prompt(didactics: str, content: str, level: EducationLevel | str) -> str:
    """Persona prompt stored as the accepted chatbot configuration."""
    lvl = _level(level)
    return (
        f"{didactics}\n\n"
        f"SUBJECT CONTENT:\n{content}\n\n"
        f"EDUCATION LEVEL: {lvl}\n\n"
        "You have access to the subject content above and use it to help "
        f"students at {lvl} level learn. Base your explanations and examples on "
        "this content.\n\n"
        'When a student says "start" or opens the conversation, give a short, '
        "warm welcome message explaining what you can help with based on the "
        "subject content. Keep it brief (at most 3 sentences)."
    )


def build_start_message(tutor_prompt: str) -> str:
    return f"{tutor_prompt}\n\n{START_INSTRUCTION}"


def format_transcript(turns: Iterable[tuple[str, str]]) -> str:
    """Render ``(role, text)`` turns as ``Student:``/``Tutor:`` paragraphs."""
    return "\n\n".join(
        f"{'Student' if role == 'user' else 'Tutor'}: {text}" for role, text in turns
    )


def build_reply_message(
    tutor_prompt: str, turns: Iterable[tuple[str, str]], user_message: str
) -> str:
    return (
        f"{tutor_prompt}\n\n"
        f"CONVERSATION SO FAR:\n{format_transcript(turns)}\n\n"
        f"Student: {user_message}\n\n"
        f"{REPLY_INSTRUCTION}"
    )
