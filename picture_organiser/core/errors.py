"""Error taxonomy shared by the pipeline, the store and the HTTP layer."""

from __future__ import annotations


class PictureOrganiserError(Exception):
    """Base error; ``status_code`` is the HTTP status the API reports."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PictureOrganiserError):
    status_code = 400
    default_message = "Invalid request"


class NoFilesProvided(ValidationError):
    default_message = "No files uploaded"


class InvalidFileType(ValidationError):
    default_message = "Invalid file type"


class FileTooLarge(ValidationError):
    default_message = "Image is too large (max 15MB before processing)"


class TooManyFiles(ValidationError):
    default_message = "Too many files in one upload"


class AuthorizationError(PictureOrganiserError):
    status_code = 401
    default_message = "Unauthorized"


class AlbumNotFound(AuthorizationError):
    status_code = 404
    default_message = "Album not found or unauthorized"


class PhotoNotFound(PictureOrganiserError):
    status_code = 404
    default_message = "Photo not found in the album"


class ProcessingError(PictureOrganiserError):
    default_message = "Failed to process image"


class OptimizationFailed(ProcessingError):
    pass


class PersistenceError(PictureOrganiserError):
    default_message = "Failed to write to the store"


class AlbumWriteRejected(PersistenceError):
    status_code = 404
    default_message = "Album not found or user does not have permission"


class StoreFault(PersistenceError):
    pass
