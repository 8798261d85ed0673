from __future__ import annotations

from typing import Annotated, Any, Callable

from fastapi import APIRouter, Depends, FastAPI, File, HTTPException, Request, UploadFile, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from app.apis.deps import current_session, get_generator, get_manager, get_tutor
from app.core.config import settings
from app.core.errors import InputValidationError, LearningEnvError
from app.core.logging import get_logger, log_context
from app.modules.documents.extractor import check_upload, extract_document
from app.modules.generation.service import GENERATED_KINDS, LearningContentGenerator
from app.modules.tutor.main import TutorService
from app.modules.wizard.models import (
    Flashcard,
    ModuleName,
    QuizQuestion,
    QuizScore,
    TheorySection,
    UploadedFile,
    WizardState,
    WizardStep,
)
from app.modules.wizard.state import WizardManager, WizardSession, can_proceed_from_content
from .schemas import (
    ContentUpdateRequest,
    FinalEnvironmentResponse,
    FlashcardCreateRequest,
    FlashcardUpdateRequest,
    GeneratedUpdateRequest,
    GenerateResponse,
    QuestionUpdateRequest,
    QuizScoreRequest,
    StateResponse,
    TheorySectionUpdateRequest,
    TutorMessageRequest,
    TutorMessageResponse,
    TutorStartResponse,
    UploadResponse,
)


router = APIRouter()
logger = get_logger(__name__)

PREFIX = f"/{settings.app.version}/wizard"

Session = Annotated[WizardSession, Depends(current_session)]
Manager = Annotated[WizardManager, Depends(get_manager)]
Generator = Annotated[LearningContentGenerator, Depends(get_generator)]
Tutor = Annotated[TutorService, Depends(get_tutor)]


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(LearningEnvError)
    async def _learning_env_error(request: Request, exc: LearningEnvError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def _lookup_failed(e: ValueError) -> HTTPException:
    msg = str(e)
    if msg.endswith("_not_found") or msg.endswith("_not_generated"):
        return HTTPException(
            status_code=404, detail=msg.replace("_", " ").capitalize()
        )
    return HTTPException(status_code=409, detail=msg)


async def _apply(operation: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Run a session operation (and its store write) off the event loop."""
    try:
        return await run_in_threadpool(operation, *args, **kwargs)
    except ValueError as e:
        raise _lookup_failed(e)


async def _snapshot(session: WizardSession) -> WizardState:
    return await run_in_threadpool(session.snapshot)


async def _state(session: WizardSession) -> StateResponse:
    state = await _snapshot(session)
    return StateResponse(state=state, can_proceed=can_proceed_from_content(state.content))


# State -------------------------------------------------------------------
@router.get(f"{PREFIX}/state", response_model=StateResponse, tags=["wizard"])
async def get_state(session: Session) -> StateResponse:
    return await _state(session)


@router.delete(f"{PREFIX}/state", response_model=StateResponse, tags=["wizard"])
async def reset_state(session: Session, manager: Manager) -> StateResponse:
    await _apply(session.reset)
    manager.drop(session)
    return await _state(session)


# Content -----------------------------------------------------------------
@router.patch(f"{PREFIX}/content", response_model=StateResponse, tags=["wizard"])
async def update_content(req: ContentUpdateRequest, session: Session) -> StateResponse:
    await _apply(session.update_content, **req.model_dump(exclude_none=True))
    return await _state(session)


@router.post(
    f"{PREFIX}/content/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["wizard"],
)
async def upload_document(session: Session, file: UploadFile = File(...)) -> UploadResponse:
    limit = settings.uploads.max_bytes
    filename = file.filename or ""
    check_upload(filename, file.size or 0, limit)
    # One byte past the limit is enough to reject an upload without a size
    data = await file.read(limit + 1)
    doc = await run_in_threadpool(extract_document, filename, data, max_bytes=limit)
    await _apply(
        session.attach_document,
        UploadedFile(filename=filename, size=len(data), data=data),
        doc.content,
    )
    return UploadResponse(**doc.model_dump(), state=await _snapshot(session))


# Steps -------------------------------------------------------------------
@router.post(f"{PREFIX}/step/next", response_model=StateResponse, tags=["wizard"])
async def next_step(session: Session) -> StateResponse:
    state = await _snapshot(session)
    if state.current_step == WizardStep.CONTENT_INPUT and not can_proceed_from_content(
        state.content
    ):
        raise InputValidationError(
            "Add subject content and tutor instructions before continuing"
        )
    await _apply(session.advance)
    return await _state(session)


@router.post(f"{PREFIX}/step/back", response_model=StateResponse, tags=["wizard"])
async def previous_step(session: Session) -> StateResponse:
    await _apply(session.retreat)
    return await _state(session)


@router.post(f"{PREFIX}/step/{{step:int}}", response_model=StateResponse, tags=["wizard"])
async def go_to_step(step: int, session: Session) -> StateResponse:
    await _apply(session.jump_to, step)
    return await _state(session)


# Modules -----------------------------------------------------------------
@router.post(
    f"{PREFIX}/modules/{{name}}/accept", response_model=StateResponse, tags=["wizard"]
)
async def accept_module(name: ModuleName, session: Session) -> StateResponse:
    if name == ModuleName.CHATBOT:
        await _apply(session.accept_chatbot)
    else:
        await _apply(session.accept_module, name)
    return await _state(session)


@router.put(f"{PREFIX}/generated", response_model=StateResponse, tags=["wizard"])
async def update_generated(req: GeneratedUpdateRequest, session: Session) -> StateResponse:
    await _apply(session.update_generated, **req.model_dump(exclude_unset=True))
    return await _state(session)


@router.post(f"{PREFIX}/complete", response_model=StateResponse, tags=["wizard"])
async def complete(session: Session) -> StateResponse:
    await _apply(session.mark_complete)
    return await _state(session)


@router.get(f"{PREFIX}/final", response_model=FinalEnvironmentResponse, tags=["wizard"])
async def final_environment(session: Session) -> FinalEnvironmentResponse:
    state = await _snapshot(session)
    return FinalEnvironmentResponse(
        first_module=await _apply(session.first_available_module),
        accepted_modules=state.accepted_modules,
        level=state.content.level,
        state=state,
    )


# Flashcards --------------------------------------------------------------
@router.post(
    f"{PREFIX}/flashcards",
    response_model=Flashcard,
    status_code=status.HTTP_201_CREATED,
    tags=["flashcards"],
)
async def add_flashcard(req: FlashcardCreateRequest, session: Session) -> Flashcard:
    return await _apply(session.add_flashcard, front=req.front, back=req.back)


@router.patch(f"{PREFIX}/flashcards/{{card_id}}", response_model=Flashcard, tags=["flashcards"])
async def edit_flashcard(
    card_id: str, req: FlashcardUpdateRequest, session: Session
) -> Flashcard:
    return await _apply(session.edit_flashcard, card_id, **req.model_dump(exclude_none=True))


@router.delete(
    f"{PREFIX}/flashcards/{{card_id}}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["flashcards"],
)
async def delete_flashcard(card_id: str, session: Session) -> None:
    await _apply(session.delete_flashcard, card_id)


# Quiz --------------------------------------------------------------------
@router.post(
    f"{PREFIX}/quiz",
    response_model=QuizQuestion,
    status_code=status.HTTP_201_CREATED,
    tags=["quiz"],
)
async def add_question(session: Session) -> QuizQuestion:
    return await _apply(session.add_question)


@router.patch(f"{PREFIX}/quiz/{{question_id}}", response_model=QuizQuestion, tags=["quiz"])
async def edit_question(
    question_id: str, req: QuestionUpdateRequest, session: Session
) -> QuizQuestion:
    return await _apply(
        session.edit_question, question_id, **req.model_dump(exclude_none=True)
    )


@router.delete(
    f"{PREFIX}/quiz/{{question_id}}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["quiz"],
)
async def delete_question(question_id: str, session: Session) -> None:
    await _apply(session.delete_question, question_id)


@router.post(f"{PREFIX}/quiz/score", response_model=QuizScore, tags=["quiz"])
async def score_quiz(req: QuizScoreRequest, session: Session) -> QuizScore:
    return await _apply(session.score_quiz, req.answers)


# Theory ------------------------------------------------------------------
@router.patch(
    f"{PREFIX}/theory/{{section_id}}", response_model=TheorySection, tags=["theory"]
)
async def edit_theory_section(
    section_id: str, req: TheorySectionUpdateRequest, session: Session
) -> TheorySection:
    return await _apply(
        session.edit_theory_section, section_id, **req.model_dump(exclude_none=True)
    )


# Generation --------------------------------------------------------------
@router.post(
    f"{PREFIX}/generate/{{kind}}", response_model=GenerateResponse, tags=["generation"]
)
async def generate(kind: ModuleName, session: Session, generator: Generator) -> GenerateResponse:
    if kind not in GENERATED_KINDS:
        raise HTTPException(status_code=404, detail=f"Nothing to generate for {kind.value}")
    state = await _snapshot(session)
    content = state.content
    logger.info(
        f"Generating {kind.value}",
        extra=log_context(session=session.key, step=state.current_step),
    )
    with session.generating(kind.value):
        if kind == ModuleName.FLASHCARDS:
            cards = await generator.generate_flashcards(content)
            await _apply(session.update_generated, flashcards=cards)
            return GenerateResponse(kind=kind, count=len(cards), flashcards=cards)
        if kind == ModuleName.QUIZ:
            questions = await generator.generate_quiz(content)
            await _apply(session.update_generated, quiz=questions)
            return GenerateResponse(kind=kind, count=len(questions), quiz=questions)
        sections = await generator.generate_theory(content)
        await _apply(session.update_generated, theory_overview=sections)
        return GenerateResponse(kind=kind, count=len(sections), theory_overview=sections)


# Tutor -------------------------------------------------------------------
@router.post(f"{PREFIX}/tutor/start", response_model=TutorStartResponse, tags=["tutor"])
async def start_tutor(session: Session, tutor: Tutor) -> TutorStartResponse:
    content = (await _snapshot(session)).content
    if not can_proceed_from_content(content):
        raise InputValidationError("Add subject content and tutor instructions first")
    with session.generating(ModuleName.CHATBOT.value):
        started = await tutor.start(content)
    await _apply(session.set_chatbot, started.prompt, started.welcome_message)
    return TutorStartResponse(chatbot=(await _snapshot(session)).generated.chatbot)


@router.post(f"{PREFIX}/tutor/message", response_model=TutorMessageResponse, tags=["tutor"])
async def tutor_message(
    req: TutorMessageRequest, session: Session, tutor: Tutor
) -> TutorMessageResponse:
    state = await _snapshot(session)
    chatbot = state.generated.chatbot
    prompt = chatbot.prompt if chatbot else tutor.persona_prompt(state.content)
    reply = await tutor.reply(prompt, req.history, req.message)
    return TutorMessageResponse(reply=reply)


@router.post(f"{PREFIX}/tutor/accept", response_model=StateResponse, tags=["tutor"])
async def accept_tutor(session: Session) -> StateResponse:
    await _apply(session.accept_chatbot)
    return await _state(session)
