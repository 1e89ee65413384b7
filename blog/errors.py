from __future__ import annotations

from typing import Optional


class BlogError(Exception):
    """Base exception for this project."""


class ConfigError(BlogError):
    """Raised when configuration or site metadata is invalid or incomplete."""

    def __init__(self, message: str, *, path: Optional[str] = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class ContentError(BlogError):
    """Raised when a content file cannot be turned into a post or page."""

    def __init__(self, message: str, *, path: Optional[str] = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path
