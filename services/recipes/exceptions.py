# services/recipes/exceptions.py
"""Failures of a generation call, each mapped to one HTTP status.

`message` is what the caller sees. Internal details go in `detail` and are
only ever logged.
"""

from typing import Optional

GENERIC_GENERATION_ERROR = "Unable to generate recipes at this time. Please try again later."


class GenerationError(Exception):
    status_code = 500
    default_message = GENERIC_GENERATION_ERROR

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = detail or self.message
        super().__init__(self.detail)


class AuthError(GenerationError):
    status_code = 401
    default_message = "Unauthorized"


class ProfileError(GenerationError):
    """Profile store unreachable, row missing, or reset write failed"""


class QuotaExceededError(GenerationError):
    status_code = 429
    default_message = "No credits remaining today"


class InputError(GenerationError):
    status_code = 400
    default_message = "Invalid request body"


class ProviderError(GenerationError):
    """Non-2xx or malformed response from the text-generation provider"""


class ParseError(GenerationError):
    """No extractable recipe JSON in the provider output"""
