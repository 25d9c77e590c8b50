"""Error taxonomy shared by services and the HTTP layer.

Services raise these errors before touching the store; the FastAPI
exception handler in `main` turns them into a `{status, message}` body
with the status code carried by the error class.
"""

from typing import Any, Dict, List, Optional


class LmsError(Exception):
    """Base class for every error the service layer raises on purpose."""
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {'status': self.status_code, 'message': self.message}


class NotFoundError(LmsError):
    """Entity absent by id or by filter (404)."""
    status_code = 404


class InvalidInputError(LmsError):
    """Missing or malformed required field (400)."""
    status_code = 400


class DuplicateEntryError(LmsError):
    """Uniqueness-key collision on save (409)."""
    status_code = 409


class DuplicatePlanError(DuplicateEntryError):
    """A batch is already owned by another learning plan (409)."""


class FileProcessingError(LmsError):
    """Upload parsing failed in a collaborator (500)."""
    status_code = 500


class PartialBatchError(LmsError):
    """A batch operation stopped part-way.

    `completed` holds the ids already processed (and committed),
    `failed_index` the position of the element that failed and `cause`
    the error it raised. The status code is the cause's.
    """

    def __init__(self, cause: LmsError, completed: List[int], failed_index: Optional[int] = None):
        self.cause = cause
        self.completed = list(completed)
        self.failed_index = failed_index
        self.status_code = cause.status_code
        super().__init__(f"batch stopped after {len(self.completed)} item(s): {cause.message}")

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body['completed'] = self.completed
        body['failed_index'] = self.failed_index
        return body
