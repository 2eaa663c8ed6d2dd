"""Error taxonomy shared by the repository, the HTTP layer and the client."""
from __future__ import annotations


class VocabError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(VocabError):
    status_code = 400


class NotFound(VocabError):
    status_code = 404


class Conflict(VocabError):
    status_code = 409


class TransportError(VocabError):
    status_code = 503


def error_for_status(status_code: int, message: str) -> VocabError:
    for cls in (ValidationError, NotFound, Conflict):
        if cls.status_code == status_code:
            return cls(message)
    return TransportError(message)
