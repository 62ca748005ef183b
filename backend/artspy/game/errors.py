from __future__ import annotations


class GameError(Exception):
    """A rejected player action. Reported to the initiating connection only."""

    code = "invalid_request"
    message = "Request rejected."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_payload(self) -> dict:
        return {"error": self.code, "message": self.message}


class RoomNotFound(GameError):
    code = "room_not_found"
    message = "Room not found."


class RoomFull(GameError):
    code = "room_full"
    message = "Room is full."


class UsernameTaken(GameError):
    code = "username_taken"
    message = "A player with this name is already in the room."


class WrongPhase(GameError):
    code = "wrong_phase"
    message = "That action is not available right now."


class NotOwner(GameError):
    code = "only_owner"
    message = "Only the room owner can do that."


class NotEnoughPlayers(GameError):
    code = "not_enough_players"
    message = "At least two players are needed."


class InvalidTarget(GameError):
    code = "invalid_target"
    message = "That player is not in the room."


class Unauthorized(GameError):
    code = "unauthorized"
    message = "Unauthorized."
