"""Error handling for GPT integration."""
from typing import Optional, List, Dict, Any


class GPTError(Exception):
    """Base class for GPT-related errors."""
    def __init__(
        self,
        message: str,
        suggestions: Optional[List[str]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.suggestions = suggestions or []
        self.metadata = metadata or {}
        super().__init__(message)


class APIError(GPTError):
    """Error from OpenAI API."""
    pass


class ValidationError(GPTError):
    """Error validating GPT response."""
    pass
