from typing import Literal

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"] = Field(
        ..., description="Who wrote the message: the student or the tutor"
    )
    content: str = Field(..., description="Content of the message")


class TutorStart(BaseModel):
    prompt: str = Field(..., description="Persona prompt sent with every turn")
    welcome_message: str = Field(..., description="Tutor's opening message")
