"""
Pipeline Exceptions

Error kinds raised by the ingest, render and batch stages.

Each exception also derives from the built-in it specialises, so callers
that already catch ValueError / OSError / RuntimeError keep working.

Scope:
    EmptyInputError      - file has no usable data rows
    MalformedRowError    - row too short or wrong bin count (strict mode)
    UnknownColormapError - colormap name not recognised (strict mode)
    IoFailureError       - read or write failure
    PoolCreationError    - worker pool could not be built (batch-fatal)
"""

from typing import Optional


class PPIError(Exception):
    """Base class for all radarppi errors."""


class EmptyInputError(PPIError, ValueError):
    """No data rows survived parsing."""


class MalformedRowError(PPIError, ValueError):
    """
    Row rejected in strict mode.

    Attributes:
        line_number: 1-based line number in the source file (header = 1)
    """

    def __init__(self, message: str, line_number: Optional[int] = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class UnknownColormapError(PPIError, ValueError):
    """Colormap name is not one of the supported maps."""


class IoFailureError(PPIError, OSError):
    """Reading an input file or writing an output image failed."""


class PoolCreationError(PPIError, RuntimeError):
    """Worker pool construction failed."""
