from __future__ import annotations

from typing import Optional

from fastapi import Header, Request
from starlette.concurrency import run_in_threadpool

from app.modules.generation.service import LearningContentGenerator
from app.modules.tutor.main import TutorService
from app.modules.wizard.state import WizardManager, WizardSession


def get_manager(request: Request) -> WizardManager:
    return request.app.state.wizard_manager


async def current_session(
    request: Request,
    x_session_id: Optional[str] = Header(default=None),
) -> WizardSession:
    """Resolve the caller's wizard session from the ``X-Session-Id`` header.

    Requests without the header share the default session key. A session that
    is not live yet is rehydrated from the store in a worker thread.
    """
    return await run_in_threadpool(get_manager(request).get, x_session_id)


def get_generator(request: Request) -> LearningContentGenerator:
    return request.app.state.generator


def get_tutor(request: Request) -> TutorService:
    return TutorService(get_generator(request))
