"""Custom exception hierarchy for CubeLUT."""

from __future__ import annotations

from typing import Optional


class CubeLutError(Exception):
    """Base exception for all CubeLUT errors."""


class LUTFormatError(CubeLutError):
    """Invalid or corrupted LUT file format.

    Carries the ``LutStatus`` that stopped the parse, when one exists.
    """

    def __init__(self, message: str, status: Optional[object] = None):
        super().__init__(message)
        self.status = status


class ExportError(CubeLutError):
    """Errors during LUT export."""


class ValidationError(CubeLutError):
    """Input validation failures."""


class LutDimensionError(ValidationError):
    """Operation needs a different table shape than the document holds."""
