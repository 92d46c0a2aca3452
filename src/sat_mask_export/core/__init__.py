"""Core utilities, mask conversion and error kinds."""

from .utils import get_memory_mb
from .masks import to_mask_bytes, flag_set_mask
from .errors import (
    MaskExportError,
    OpenError,
    ExpressionError,
    EvalError,
    WriteError,
)

__all__ = [
    "get_memory_mb",
    "to_mask_bytes",
    "flag_set_mask",
    "MaskExportError",
    "OpenError",
    "ExpressionError",
    "EvalError",
    "WriteError",
]
