class ShortlinkError(Exception):
    """Base exception for all application-specific errors."""

    error_code = "app:shortlink_error"


class LinkValidationError(ShortlinkError):
    """Raised when a shortlink or longlink is malformed or reserved."""

    error_code = "link:validation_error"


class LinkConflictError(ShortlinkError):
    """Raised when a shortlink is already taken by another link."""

    error_code = "link:conflict_error"

    def __init__(self, shortlink: str):
        super().__init__(f"Short URL '{shortlink}' is already in use.")
        self.shortlink = shortlink


class LinkNotFoundError(ShortlinkError):
    """Raised when an operation targets a shortlink that does not exist."""

    error_code = "link:not_found_error"

    def __init__(self, shortlink: str):
        super().__init__(f"Short URL '{shortlink}' not found.")
        self.shortlink = shortlink


class GenerationExhaustedError(ShortlinkError):
    """Raised when no free shortlink was generated within the retry bound."""

    error_code = "link:generation_exhausted_error"

    def __init__(self, attempts: int):
        super().__init__(f"Could not generate a free short URL after {attempts} attempts.")
        self.attempts = attempts


class StorageUnavailableError(ShortlinkError):
    """Raised when the backing database cannot be opened or used."""

    error_code = "storage:unavailable_error"
