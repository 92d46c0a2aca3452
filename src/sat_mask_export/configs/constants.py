"""Configuration constants for mask export."""
from enum import Enum

# Mask sample values
MASK_TRUE = 255
MASK_FALSE = 0
BYTE_MASK = 0xFF

# Band tags of the form FLAG_<NAME>=<bitmask> mark a band as a flag dataset
FLAG_TAG_PREFIX = "FLAG_"
DEFAULT_BAND_PREFIX = "band_"

USAGE = "parameter usage: <input-file> <output-file> <mask-expr>"

# Output formats
class OutputFormat(Enum):
    RAW = "raw"
    GTIFF = "gtiff"

    def __str__(self):
        return self.value
