from __future__ import annotations


class GameError(Exception):
    """Base class for rejected commands.

    Every subclass is raised before any room state is touched, so callers can
    report it and carry on without rolling anything back.
    """

    status_code = 400

    def __init__(self, code: str, message: str = "") -> None:
        super().__init__(message or code)
        self.code = code
        self.message = message or code

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class ValidationError(GameError):
    status_code = 400


class NotFoundError(GameError):
    status_code = 404

    def __init__(self, code: str = "room_not_found", message: str = "Room not found.") -> None:
        super().__init__(code, message)


class PolicyError(GameError):
    status_code = 403


class TransientIOError(Exception):
    """Persistence failure. Absorbed by the storage layer, never sent to clients."""
