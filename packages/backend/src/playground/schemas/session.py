"""Pydantic schemas for the session API."""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field


class SessionCreate(BaseModel):
    producer: Optional[str] = None
    params: dict[str, Union[str, int, float]] = Field(default_factory=dict)


class SessionCreated(BaseModel):
    session_id: str
    producer: str
    data: Any
    socket_path: str = "/socket"


class HealthRead(BaseModel):
    status: str
    server: str
    version: str
    sessions: int
    background_tasks: int
