# services/recipes/errors.py
from typing import Optional


class RecipeServiceError(Exception):
    """
    Base class for failures the recipes service reports to callers.

    ``str(error)`` carries the internal detail for logs; ``public_message`` is
    the only text that may reach an HTTP client.
    """

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, public_message: Optional[str] = None):
        super().__init__(message or self.public_message)
        if public_message is not None:
            self.public_message = public_message


class InvalidInputError(RecipeServiceError):
    status_code = 400
    public_message = "Invalid ingredients"

    def __init__(self, message: str):
        # Input problems are user-correctable, so the detail is safe to show
        super().__init__(message, public_message=message)


class MisconfiguredError(RecipeServiceError):
    status_code = 503
    public_message = "Recipe generation service is unavailable. Please try again later."


class RateLimitedError(RecipeServiceError):
    status_code = 503
    public_message = "Request limit reached. Please try again in a few minutes."

    def __init__(self, message: Optional[str] = None, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after


class MalformedResponseError(RecipeServiceError):
    status_code = 503
    public_message = "The AI service returned an invalid response. Please try again."


class ProviderUnavailableError(RecipeServiceError):
    status_code = 503
    public_message = "Could not reach the AI service. Please try again."


class PersistenceError(RecipeServiceError):
    status_code = 500
    public_message = "Failed to access saved data. Please try again."
