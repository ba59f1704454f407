from __future__ import annotations
from typing import Any, Optional


class SignageError(Exception):
    """Base class for everything the player raises on purpose."""


class ScreenNotFound(SignageError):
    """The requested screen does not exist (fatal to the session)."""

    def __init__(self, screen_id: str):
        super().__init__(f"Screen not found: {screen_id}")
        self.screen_id = screen_id


class FetchError(SignageError):
    """Raw bytes for a source location could not be retrieved."""

    NETWORK = "network"
    NOT_FOUND = "not-found"

    def __init__(self, location: str, kind: str, detail: str = ""):
        msg = f"{kind} while fetching {location}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)
        self.location = location
        self.kind = kind


class DocumentLoadFailure(SignageError):
    """One playlist entry could not be fetched or decoded. Never fatal."""

    def __init__(self, entry: Any, reason: str):
        name = getattr(entry, "display_name", entry)
        super().__init__(f"{name}: {reason}")
        self.entry = entry
        self.reason = reason


class RenderFailure(SignageError):
    """A single page could not be rasterised. The previous frame stays up."""

    def __init__(self, message: str, page: Optional[Any] = None):
        super().__init__(message)
        self.page = page
