"""Typed error hierarchy for the visual search pipeline.

Every error carries a machine-readable `code` so HTTP callers never need to
parse exception messages. Only the fatal category is raised out of
`search_by_image`; everything else is absorbed by the fallback cascades.
"""

from __future__ import annotations

from typing import Optional


class ScoutError(Exception):
    """Base for all visual search errors."""
    code: str = "scout_error"
    retriable: bool = False

    def __init__(self, message: str, *, code: Optional[str] = None, retriable: Optional[bool] = None):
        super().__init__(message)
        if code is not None:
            self.code = code
        if retriable is not None:
            self.retriable = retriable


class ImageNotFoundError(ScoutError):
    """The source image does not exist at call time."""
    code = "image_not_found"
    retriable = False


class UploadTriggerError(ScoutError):
    """No file input could be reached after every fallback strategy."""
    code = "upload_trigger_failed"
    retriable = True

    def __init__(self, message: str, *, screenshot_path: Optional[str] = None):
        super().__init__(message)
        self.screenshot_path = screenshot_path


class NavigationError(ScoutError):
    """The marketplace could not be loaded."""
    code = "navigation_failed"
    retriable = True


class SearchTimeoutError(ScoutError):
    """The overall request ceiling fired before the search finished."""
    code = "search_timeout"
    retriable = True
