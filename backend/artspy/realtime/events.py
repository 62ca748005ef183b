from __future__ import annotations

from typing import Annotated, Any, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


def _upper(value: str) -> str:
    return value.upper()


def _clip_name(name: str) -> str:
    return name[:16].strip()


def _validate_name(name: str) -> str:
    # Avoid obvious HTML/script injection.
    if "<" in name or ">" in name:
        raise ValueError("invalid characters in name")
    # No control characters.
    if any(ord(ch) < 32 for ch in name):
        raise ValueError("control characters in name")
    return name


RoomCode = Annotated[str, Field(min_length=1, max_length=12), AfterValidator(_upper)]
Username = Annotated[str, Field(min_length=1, max_length=16), AfterValidator(_validate_name)]


class Event(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")


class CreateRoom(Event):
    username: Username
    is_public: bool = Field(True, alias="isPublic")
    rounds: int | None = Field(None, ge=1)


class JoinRoom(Event):
    username: Username
    room: RoomCode


class RoomAction(Event):
    """start_game, skip_discussion, skip_match_end, toggle_ready."""

    room: RoomCode


class KickPlayer(Event):
    room: RoomCode
    target_id: str = Field(min_length=1, alias="targetId")


class SubmitWord(Event):
    room: RoomCode
    word: str = Field(min_length=1, max_length=40)


class SubmitVote(Event):
    room: RoomCode
    target_id: str = Field(min_length=1, alias="targetId")


class ChatMessage(Event):
    room: RoomCode
    message: str = Field(min_length=1, max_length=500)
    username: Annotated[str, AfterValidator(_clip_name)] = ""


class AdminSkipPhase(Event):
    room: RoomCode
    password: str = ""


E = TypeVar("E", bound=Event)


def parse(model: type[E], data: Any) -> E:
    """Raises ``pydantic.ValidationError`` for malformed payloads."""
    return model.model_validate(data if data is not None else {})
