"""Note lifecycle errors.

Each carries the HTTP status and a client-safe message; the app-level
handler renders them as ``{"error": ..., "statusCode": ...}``.
"""


class NoteError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class NoteValidationError(NoteError):
    status_code = 400
    message = "Invalid request"


class NoteNotFound(NoteError):
    status_code = 404
    message = "Note not found"


class NoteExpired(NoteError):
    status_code = 410
    message = "Note expired"


class NoteIdCollision(NoteError):
    """Raised by storage when the generated id is already taken."""

    status_code = 500
    message = "Could not allocate a note id, please retry"


class StorageUnavailable(NoteError):
    status_code = 500
    message = "Internal server error"
