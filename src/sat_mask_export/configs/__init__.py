"""Configuration constants for mask export."""

from .constants import (
    MASK_TRUE,
    MASK_FALSE,
    FLAG_TAG_PREFIX,
    USAGE,
    OutputFormat,
)

__all__ = [
    "MASK_TRUE",
    "MASK_FALSE",
    "FLAG_TAG_PREFIX",
    "USAGE",
    "OutputFormat",
]
