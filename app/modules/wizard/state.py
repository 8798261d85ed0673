"""Linear six-step wizard state machine with persistence on every change.

``WizardSession`` owns one ``WizardState`` aggregate and mirrors it to an
injected ``StateStore`` after each mutation. Store failures are logged and
otherwise ignored: the in-memory state stays authoritative.

Every public operation runs under a per-session lock, so callers may invoke
them from worker threads (the API does, to keep store I/O off the event loop).

``WizardManager`` keeps a bounded, least-recently-used set of live sessions so
that runtime-only flags (generation in progress) survive between HTTP
requests. Evicted sessions are rehydrated from the store on their next use.
"""

from __future__ import annotations

import functools
import threading
from collections import OrderedDict
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Optional, TypeVar, Union
from uuid import uuid4

from app.core.config import settings
from app.core.errors import GenerationInProgressError
from app.core.logging import get_logger, log_context
from app.modules.wizard.models import (
    FIRST_STEP,
    LAST_STEP,
    ChatbotConfig,
    ContentInput,
    Flashcard,
    GeneratedContent,
    ModuleName,
    QuizQuestion,
    QuizScore,
    TheorySection,
    UploadedFile,
    WizardState,
)
from app.modules.wizard.store import StateStore

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

DEFAULT_STATE_KEY = "learning-environment-state"
DOCUMENT_SEPARATOR = "\n\n--- Uploaded document ---\n\n"

# Order in which the final screen picks the module to show first
FINAL_MODULE_ORDER = (
    ModuleName.CHATBOT,
    ModuleName.THEORY,
    ModuleName.FLASHCARDS,
    ModuleName.QUIZ,
)


def new_record_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:8]}"


def clamp_step(step: int) -> int:
    return max(FIRST_STEP, min(int(step), LAST_STEP))


def serialized(method: F) -> F:
    """Run a ``WizardSession`` method while holding the session lock."""

    @functools.wraps(method)
    def wrapper(self: "WizardSession", *args: Any, **kwargs: Any) -> Any:
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def can_proceed_from_content(content: ContentInput) -> bool:
    """Step 1 gate: some subject matter and non-empty tutor instructions."""
    has_content = bool(content.subject_text.strip()) or bool(
        content.uploaded_file_contents
    )
    return has_content and bool(content.didactics.strip())


class WizardSession:
    def __init__(self, store: StateStore, *, key: str = DEFAULT_STATE_KEY) -> None:
        self.store = store
        self.key = key
        self.state = WizardState()
        self._generating: set[str] = set()
        self._lock = threading.RLock()

    @classmethod
    def open(cls, store: StateStore, *, key: str = DEFAULT_STATE_KEY) -> "WizardSession":
        session = cls(store, key=key)
        session.rehydrate()
        return session

    # Persistence ---------------------------------------------------------
    @serialized
    def persist(self) -> bool:
        try:
            self.store.save(self.key, self.state.model_dump_json())
        except Exception as e:  # noqa: BLE001
            logger.warning(
                f"Failed to save wizard state: {e}", extra=self._log_extra()
            )
            return False
        return True

    @serialized
    def rehydrate(self) -> bool:
        try:
            saved = self.store.load(self.key)
            if not saved:
                return False
            self.state = WizardState.model_validate_json(saved)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                f"Failed to load wizard state: {e}", extra=self._log_extra()
            )
            return False
        return True

    @serialized
    def reset(self) -> WizardState:
        self.state = WizardState()
        try:
            self.store.delete(self.key)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                f"Failed to erase wizard state: {e}", extra=self._log_extra()
            )
        return self.state

    @serialized
    def snapshot(self) -> WizardState:
        """Deep copy of the current state, safe to serialize outside the lock."""
        return self.state.model_copy(deep=True)

    def _commit(self) -> WizardState:
        self.persist()
        return self.state

    def _log_extra(self) -> dict:
        return log_context(session=self.key, step=self.state.current_step)

    # Content -------------------------------------------------------------
    @serialized
    def update_content(self, **fields: Any) -> WizardState:
        current = self.state.content
        data = current.model_dump()
        data.update(fields)
        data.setdefault("uploaded_files", current.uploaded_files)
        self.state.content = ContentInput.model_validate(data)
        return self._commit()

    @serialized
    def attach_document(self, upload: UploadedFile, text: str) -> WizardState:
        content = self.state.content
        separator = DOCUMENT_SEPARATOR if content.subject_text.strip() else ""
        return self.update_content(
            subject_text=content.subject_text + separator + (text or ""),
            uploaded_files=[*content.uploaded_files, upload],
            uploaded_file_contents=[*content.uploaded_file_contents, text or ""],
        )

    @serialized
    def update_generated(self, **fields: Any) -> WizardState:
        data = self.state.generated.model_dump()
        data.update(fields)
        self.state.generated = GeneratedContent.model_validate(data)
        return self._commit()

    # Modules -------------------------------------------------------------
    @serialized
    def accept_module(self, name: Union[str, ModuleName]) -> WizardState:
        module = ModuleName(name)
        if module not in self.state.accepted_modules:
            self.state.accepted_modules.append(module)
        return self._commit()

    @serialized
    def accept_chatbot(self) -> WizardState:
        chatbot = self.state.generated.chatbot
        if chatbot is None:
            raise ValueError("chatbot_not_generated")
        self.state.generated.chatbot = chatbot.model_copy(update={"is_accepted": True})
        return self.accept_module(ModuleName.CHATBOT)

    @serialized
    def set_chatbot(self, prompt: str, welcome_message: str) -> WizardState:
        self.state.generated.chatbot = ChatbotConfig(
            prompt=prompt, welcome_message=welcome_message, is_accepted=False
        )
        return self._commit()

    @serialized
    def mark_complete(self) -> WizardState:
        self.state.is_complete = True
        return self._commit()

    @serialized
    def first_available_module(self) -> ModuleName:
        for module in FINAL_MODULE_ORDER:
            if module in self.state.accepted_modules:
                return module
        return ModuleName.CHATBOT

    # Steps ---------------------------------------------------------------
    @serialized
    def advance(self) -> WizardState:
        self.state.current_step = clamp_step(self.state.current_step + 1)
        return self._commit()

    @serialized
    def retreat(self) -> WizardState:
        self.state.current_step = clamp_step(self.state.current_step - 1)
        return self._commit()

    @serialized
    def jump_to(self, step: int) -> WizardState:
        self.state.current_step = clamp_step(step)
        return self._commit()

    # Flashcard editing ---------------------------------------------------
    @serialized
    def add_flashcard(self, front: str = "", back: str = "") -> Flashcard:
        card = Flashcard(id=new_record_id("card"), front=front, back=back)
        self.state.generated.flashcards.append(card)
        self._commit()
        return card

    @serialized
    def edit_flashcard(self, card_id: str, **fields: Any) -> Flashcard:
        cards = self.state.generated.flashcards
        for i, card in enumerate(cards):
            if card.id == card_id:
                cards[i] = Flashcard.model_validate(
                    {**card.model_dump(), **fields, "id": card_id}
                )
                self._commit()
                return cards[i]
        raise ValueError("flashcard_not_found")

    @serialized
    def delete_flashcard(self, card_id: str) -> None:
        cards = self.state.generated.flashcards
        remaining = [c for c in cards if c.id != card_id]
        if len(remaining) == len(cards):
            raise ValueError("flashcard_not_found")
        self.state.generated.flashcards = remaining
        self._commit()

    # Quiz editing --------------------------------------------------------
    @serialized
    def add_question(self) -> QuizQuestion:
        question = QuizQuestion(id=new_record_id("question"))
        self.state.generated.quiz.append(question)
        self._commit()
        return question

    @serialized
    def edit_question(self, question_id: str, **fields: Any) -> QuizQuestion:
        questions = self.state.generated.quiz
        for i, q in enumerate(questions):
            if q.id == question_id:
                questions[i] = QuizQuestion.model_validate(
                    {**q.model_dump(), **fields, "id": question_id}
                )
                self._commit()
                return questions[i]
        raise ValueError("question_not_found")

    @serialized
    def delete_question(self, question_id: str) -> None:
        questions = self.state.generated.quiz
        remaining = [q for q in questions if q.id != question_id]
        if len(remaining) == len(questions):
            raise ValueError("question_not_found")
        self.state.generated.quiz = remaining
        self._commit()

    @serialized
    def score_quiz(self, answers: Mapping[str, int]) -> QuizScore:
        quiz = self.state.generated.quiz
        correct = sum(1 for q in quiz if answers.get(q.id) == q.correct_answer)
        return QuizScore(correct=correct, total=len(quiz))

    # Theory editing ------------------------------------------------------
    @serialized
    def edit_theory_section(self, section_id: str, **fields: Any) -> TheorySection:
        sections = self.state.generated.theory_overview
        for i, s in enumerate(sections):
            if s.id == section_id:
                sections[i] = TheorySection.model_validate(
                    {**s.model_dump(), **fields, "id": section_id}
                )
                self._commit()
                return sections[i]
        raise ValueError("section_not_found")

    # Runtime flags -------------------------------------------------------
    def is_generating(self, kind: Optional[str] = None) -> bool:
        if kind is None:
            return bool(self._generating)
        return kind in self._generating

    @contextmanager
    def generating(self, kind: str) -> Iterator[None]:
        """Gate a generation so the same module can't run twice at once."""
        if kind in self._generating:
            raise GenerationInProgressError(kind)
        self._generating.add(kind)
        try:
            yield
        finally:
            self._generating.discard(kind)


class WizardManager:
    """Keeps live sessions per key; rehydrates a session on first access.

    At most ``max_sessions`` sessions stay in memory. The least recently used
    idle session is evicted first; sessions with a running generation are
    never evicted.
    """

    def __init__(
        self,
        store: StateStore,
        *,
        base_key: str = DEFAULT_STATE_KEY,
        max_sessions: Optional[int] = None,
    ) -> None:
        self.store = store
        self.base_key = base_key
        self.max_sessions = max_sessions or settings.storage.max_live_sessions
        self.sessions: OrderedDict[str, WizardSession] = OrderedDict()
        self._lock = threading.Lock()

    def key_for(self, session_id: Optional[str]) -> str:
        if not session_id or session_id == "default":
            return self.base_key
        return f"{self.base_key}:{session_id}"

    def get(self, session_id: Optional[str] = None) -> WizardSession:
        key = self.key_for(session_id)
        with self._lock:
            session = self.sessions.get(key)
            if session is not None:
                self.sessions.move_to_end(key)
                return session

        # Rehydration reads the store; keep it outside the registry lock
        opened = WizardSession.open(self.store, key=key)
        with self._lock:
            session = self.sessions.setdefault(key, opened)
            self.sessions.move_to_end(key)
            self._evict_idle()
        return session

    def drop(self, session: WizardSession) -> None:
        """Forget an idle session; its next use rehydrates from the store."""
        with self._lock:
            if self.sessions.get(session.key) is session and not session.is_generating():
                del self.sessions[session.key]

    def _evict_idle(self) -> None:
        newest = next(reversed(self.sessions))
        for key in [k for k, s in self.sessions.items() if not s.is_generating()]:
            if len(self.sessions) <= self.max_sessions:
                break
            if key == newest:
                continue
            del self.sessions[key]
            logger.debug(f"Evicted idle wizard session {key}")
