import threading

import pytest

from app.core.errors import GenerationInProgressError
from app.modules.wizard.models import (
    DEFAULT_DIDACTICS,
    EducationLevel,
    Flashcard,
    ModuleName,
    QuizQuestion,
    TheorySection,
    UploadedFile,
    WizardState,
)
from app.modules.wizard.state import (
    DEFAULT_STATE_KEY,
    DOCUMENT_SEPARATOR,
    WizardManager,
    WizardSession,
    can_proceed_from_content,
)


@pytest.mark.unit
def test_fresh_session_defaults(session):
    state = session.state
    assert state.current_step == 1
    assert state.content.level == EducationLevel.HBO
    assert state.content.didactics == DEFAULT_DIDACTICS
    assert state.accepted_modules == []
    assert state.is_complete is False


@pytest.mark.unit
def test_steps_stay_within_bounds(session):
    for _ in range(10):
        session.advance()
    assert session.state.current_step == 6
    for _ in range(10):
        session.retreat()
    assert session.state.current_step == 1
    session.jump_to(0)
    assert session.state.current_step == 1
    session.jump_to(42)
    assert session.state.current_step == 6
    session.jump_to(3)
    assert session.state.current_step == 3


@pytest.mark.unit
def test_accept_module_is_idempotent(session):
    session.accept_module(ModuleName.FLASHCARDS)
    session.accept_module("flashcards")
    assert session.state.accepted_modules == [ModuleName.FLASHCARDS]


@pytest.mark.unit
def test_accept_chatbot_requires_generated_chatbot(session):
    with pytest.raises(ValueError, match="chatbot_not_generated"):
        session.accept_chatbot()
    session.set_chatbot("persona", "Hello!")
    session.accept_chatbot()
    assert session.state.generated.chatbot.is_accepted is True
    assert session.state.accepted_modules == [ModuleName.CHATBOT]


@pytest.mark.unit
def test_every_change_is_persisted(memory_store):
    session = WizardSession.open(memory_store)
    session.update_content(subject_text="Cells", level=EducationLevel.MBO)
    session.advance()

    reopened = WizardSession.open(memory_store)
    assert reopened.state.content.subject_text == "Cells"
    assert reopened.state.content.level == EducationLevel.MBO
    assert reopened.state.current_step == 2
    assert memory_store.load(f"{DEFAULT_STATE_KEY}:other") is None
    assert memory_store.load(DEFAULT_STATE_KEY) is not None


@pytest.mark.unit
def test_round_trip_drops_file_handles_only(memory_store):
    session = WizardSession.open(memory_store)
    session.attach_document(
        UploadedFile(filename="notes.docx", size=3, data=b"abc"), "Extracted text"
    )
    session.update_generated(
        flashcards=[Flashcard(id="c1", front="F", back="B")],
        quiz=[QuizQuestion(id="q1", question="Q", options=["a", "b", "c"], correct_answer=2)],
    )
    session.accept_module(ModuleName.QUIZ)

    reopened = WizardSession.open(memory_store)
    assert reopened.state.content.uploaded_files == []
    expected = session.state.model_copy(deep=True)
    expected.content.uploaded_files = []
    assert reopened.state == expected


@pytest.mark.unit
def test_corrupt_snapshot_falls_back_to_fresh_state(memory_store):
    memory_store.save(DEFAULT_STATE_KEY, "{not json")
    session = WizardSession.open(memory_store)
    assert session.state == WizardState()


@pytest.mark.unit
def test_store_failures_do_not_break_the_session(broken_store):
    session = WizardSession.open(broken_store)
    session.update_content(subject_text="Still works")
    assert session.persist() is False
    assert session.state.content.subject_text == "Still works"
    session.reset()
    assert session.state == WizardState()


@pytest.mark.unit
def test_reset_erases_stored_copy(memory_store):
    session = WizardSession.open(memory_store)
    session.advance()
    session.reset()
    assert memory_store.load(DEFAULT_STATE_KEY) is None
    assert session.state.current_step == 1


@pytest.mark.unit
def test_attach_document_appends_with_separator(session):
    session.update_content(subject_text="Typed intro")
    session.attach_document(UploadedFile(filename="a.pdf"), "From PDF")
    content = session.state.content
    assert content.subject_text == "Typed intro" + DOCUMENT_SEPARATOR + "From PDF"
    assert content.uploaded_file_contents == ["From PDF"]
    assert [f.filename for f in content.uploaded_files] == ["a.pdf"]


@pytest.mark.unit
def test_update_content_keeps_file_handles(session):
    session.attach_document(UploadedFile(filename="a.pdf"), "From PDF")
    session.update_content(level=EducationLevel.UNI)
    assert [f.filename for f in session.state.content.uploaded_files] == ["a.pdf"]


@pytest.mark.unit
def test_can_proceed_needs_content_and_didactics(session):
    assert can_proceed_from_content(session.state.content) is False
    session.update_content(subject_text="   ")
    assert can_proceed_from_content(session.state.content) is False
    session.update_content(subject_text="Cells")
    assert can_proceed_from_content(session.state.content) is True
    session.update_content(didactics=" ")
    assert can_proceed_from_content(session.state.content) is False


@pytest.mark.unit
def test_flashcard_editing(session):
    card = session.add_flashcard()
    assert card.front == "" and card.back == ""
    edited = session.edit_flashcard(card.id, front="Front")
    assert edited.front == "Front"
    assert session.state.generated.flashcards[0].front == "Front"
    session.delete_flashcard(card.id)
    assert session.state.generated.flashcards == []
    with pytest.raises(ValueError, match="flashcard_not_found"):
        session.delete_flashcard(card.id)


@pytest.mark.unit
def test_question_editing_keeps_three_options(session):
    question = session.add_question()
    assert question.options == ["", "", ""]
    session.edit_question(question.id, options=["a", "b", "c"], correct_answer=2)
    assert session.state.generated.quiz[0].correct_answer == 2
    with pytest.raises(ValueError):
        session.edit_question(question.id, options=["a", "b"])
    with pytest.raises(ValueError, match="question_not_found"):
        session.edit_question("missing", question="x")


@pytest.mark.unit
def test_theory_section_editing(session):
    session.update_generated(
        theory_overview=[
            TheorySection(id="orientation", title="Orientation", content="old", kind="orientation")
        ]
    )
    section = session.edit_theory_section("orientation", content="new")
    assert section.content == "new"
    with pytest.raises(ValueError, match="section_not_found"):
        session.edit_theory_section("essence", content="x")


@pytest.mark.unit
def test_first_available_module_follows_final_order(session):
    assert session.first_available_module() == ModuleName.CHATBOT
    session.accept_module(ModuleName.QUIZ)
    session.accept_module(ModuleName.FLASHCARDS)
    assert session.first_available_module() == ModuleName.FLASHCARDS
    session.accept_module(ModuleName.THEORY)
    assert session.first_available_module() == ModuleName.THEORY


@pytest.mark.unit
def test_score_quiz(session):
    session.update_generated(
        quiz=[
            QuizQuestion(id="q1", question="1", options=["a", "b", "c"], correct_answer=0),
            QuizQuestion(id="q2", question="2", options=["a", "b", "c"], correct_answer=2),
        ]
    )
    score = session.score_quiz({"q1": 0, "q2": 1})
    assert (score.correct, score.total) == (1, 2)


@pytest.mark.unit
def test_generating_flag_blocks_second_run(session):
    with session.generating("flashcards"):
        assert session.is_generating("flashcards")
        with pytest.raises(GenerationInProgressError):
            with session.generating("flashcards"):
                pass
        with session.generating("quiz"):
            pass
    assert not session.is_generating("flashcards")


@pytest.mark.unit
def test_manager_keys_sessions_separately(memory_store):
    manager = WizardManager(memory_store)
    assert manager.get() is manager.get("default")
    other = manager.get("abc")
    assert other.key == f"{DEFAULT_STATE_KEY}:abc"
    other.advance()
    assert manager.get().state.current_step == 1
    manager.drop(other)
    assert manager.get("abc") is not other
    assert manager.get("abc").state.current_step == 2


@pytest.mark.unit
def test_manager_evicts_least_recently_used_sessions(memory_store):
    manager = WizardManager(memory_store, max_sessions=3)
    first = manager.get("s0")
    first.advance()
    for i in range(1, 1000):
        manager.get(f"s{i}")
    assert len(manager.sessions) == 3
    assert list(manager.sessions)[-1] == manager.key_for("s999")
    reloaded = manager.get("s0")
    assert reloaded is not first
    assert reloaded.state.current_step == 2


@pytest.mark.unit
def test_recently_used_session_survives_eviction(memory_store):
    manager = WizardManager(memory_store, max_sessions=2)
    kept = manager.get("a")
    manager.get("b")
    assert manager.get("a") is kept
    manager.get("c")
    assert manager.key_for("b") not in manager.sessions
    assert manager.get("a") is kept


@pytest.mark.unit
def test_generating_session_is_never_evicted(memory_store):
    manager = WizardManager(memory_store, max_sessions=1)
    busy = manager.get("busy")
    with busy.generating("quiz"):
        manager.get("other")
        manager.get("third")
        assert manager.get("busy") is busy
        manager.drop(busy)
        assert manager.get("busy") is busy
    manager.get("fourth")
    assert manager.key_for("busy") not in manager.sessions


@pytest.mark.unit
def test_concurrent_edits_from_threads_are_all_kept(memory_store):
    session = WizardSession.open(memory_store)
    cards = [session.add_flashcard(front=f"F{i}") for i in range(20)]

    def edit(card):
        session.edit_flashcard(card.id, back=f"B-{card.front}")

    def add(i):
        session.add_flashcard(front=f"N{i}")

    workers = [threading.Thread(target=edit, args=(c,)) for c in cards]
    workers += [threading.Thread(target=add, args=(i,)) for i in range(20)]
    for w in workers:
        w.start()
    for w in workers:
        w.join()

    reopened = WizardSession.open(memory_store)
    flashcards = reopened.state.generated.flashcards
    assert len(flashcards) == 40
    assert {c.back for c in flashcards if c.front.startswith("F")} == {
        f"B-F{i}" for i in range(20)
    }


@pytest.mark.unit
def test_snapshot_is_detached_from_live_state(session):
    session.add_flashcard(front="F")
    copy = session.snapshot()
    copy.generated.flashcards[0].front = "changed"
    copy.content.subject_text = "changed"
    assert session.state.generated.flashcards[0].front == "F"
    assert session.state.content.subject_text == ""
