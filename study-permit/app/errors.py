"""Exception types raised by the study permit document pipeline.

Validation problems are never raised: they come back as a
``ValidationReport``. These exceptions cover infrastructure and rendering
failures only.
"""

from __future__ import annotations

from pathlib import Path


class StudyPermitError(Exception):
    """Base class for document pipeline failures."""


class MissingTemplateError(StudyPermitError):
    """An external template or field-mapping file is not where we expect it."""

    def __init__(self, path: Path | str, hint: str = "") -> None:
        self.path = Path(path)
        self.hint = hint
        message = f"Required file not found: {self.path}"
        if hint:
            message = f"{message}. {hint}"
        super().__init__(message)


class RenderError(StudyPermitError):
    """A single value could not be formatted for placement on the page."""

    def __init__(self, path: str, value: object, reason: str = "") -> None:
        self.path = path
        self.value = value
        self.reason = reason
        super().__init__(f"Cannot render {path}={value!r}: {reason or 'malformed value'}")
