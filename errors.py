class ComplaintDeskError(Exception):
    """Base error; carries the HTTP status the API layer answers with."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ComplaintDeskError):
    status_code = 400


class AuthError(ComplaintDeskError):
    status_code = 400


class NotFoundError(ComplaintDeskError):
    status_code = 404


class StorageError(ComplaintDeskError):
    status_code = 500


class DuplicateRecordError(StorageError):
    """A unique index rejected the insert."""
