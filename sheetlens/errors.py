class SheetLensError(Exception):
    """Base error carrying a public message and the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_response(self) -> dict:
        return {"error": self.message, "status": self.status_code}


class Unauthenticated(SheetLensError):
    status_code = 401


class Forbidden(SheetLensError):
    status_code = 403


class ValidationError(SheetLensError):
    status_code = 400


class NotFound(SheetLensError):
    status_code = 404


class FileTooLarge(SheetLensError):
    status_code = 413


class UnsupportedFileType(SheetLensError):
    status_code = 415


class StorageError(SheetLensError):
    status_code = 500
