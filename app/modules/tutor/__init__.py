"""Tutor module exports."""

from .main import TutorService
from .models import ChatMessage, TutorStart

__all__ = ["TutorService", "ChatMessage", "TutorStart"]
