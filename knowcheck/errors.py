"""Error hierarchy shared by the knowledge checker."""

from __future__ import annotations


class KnowledgeCheckerError(Exception):
    """Base class for every error raised by the package."""

    reason = "knowledge checker error"

    def __init__(self, message: str = "") -> None:
        self.message = message
        text = f"{message}: {self.reason}" if message else self.reason
        super().__init__(text)


class InvalidParamError(KnowledgeCheckerError):
    """A caller supplied an invalid argument."""

    reason = "invalid param"


class UnprocessableEntityError(KnowledgeCheckerError):
    """An entity could not be built from the given data."""

    reason = "unprocessible entity"


class InvalidStateError(KnowledgeCheckerError):
    """An operation is not supported in the current session state."""

    reason = "invalid state"


class InternalError(KnowledgeCheckerError):
    """A failure inside the storage or another collaborator."""

    reason = "internal error"