"""
Error taxonomy for the storyboard generation core.

A soft refusal (image model answering with text) is not an exception; see
images.TextRefusal.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class StoryboardError(Exception):
    """Base class for every error raised by this package."""


class CredentialMissing(StoryboardError, ValueError):
    """No API key could be resolved. Raised before any network call."""


class ProviderError(StoryboardError):
    """The generative-content provider answered with an error."""

    def __init__(self, message: str, status: Optional[int] = None, error: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.status = status
        self.error = error or {}


class TransientProviderError(ProviderError):
    """Provider error with a 5xx status worth retrying."""


class ParseError(StoryboardError, ValueError):
    """A structured (JSON mode) response was absent or not valid JSON."""


class GenerationExhausted(StoryboardError):
    """Both image generation tiers failed."""

    def __init__(self, message: str, tier1_error: Optional[BaseException] = None, tier2_error: Optional[BaseException] = None):
        super().__init__(message)
        self.tier1_error = tier1_error
        self.tier2_error = tier2_error


class AudioMissing(StoryboardError):
    """A speech response carried no inline audio payload."""


class InvalidTransition(StoryboardError, ValueError):
    """A frame status change that the status machine does not allow."""
