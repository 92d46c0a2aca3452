from typing import Optional, Sequence, Union
import numpy as np

from sat_mask_export.configs.constants import BYTE_MASK, MASK_FALSE, MASK_TRUE

def flag_set_mask(raw: np.ndarray, bitmask: int) -> np.ndarray:
    """
    Return boolean mask of pixels in `raw` where every bit of `bitmask` is set.
    """
    raw = np.asarray(raw).astype(np.int64, copy=False)
    return (raw & bitmask) == bitmask

def bool_to_mask_values(mask: np.ndarray) -> np.ndarray:
    """
    Convert a boolean mask to uint8 mask values (true -> 255, false -> 0).
    """
    return np.where(mask, MASK_TRUE, MASK_FALSE).astype(np.uint8)

def to_mask_bytes(
    samples: Union[np.ndarray, Sequence[int]],
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Truncate mask samples to single bytes.

    Integer samples keep their low 8 bits (s & 0xFF), so 255 stays 255 and -1 becomes 255.
    Boolean samples map true -> 255 and false -> 0. Floats are truncated to integers first.

    Args:
        samples: One scanline of mask samples
        out: Optional uint8 buffer of the same length to write into (reused across rows)

    Returns:
        np.ndarray: uint8 array holding the converted samples (`out` if given)
    """
    samples = np.asarray(samples)
    if out is None:
        out = np.empty(samples.shape, dtype=np.uint8)
    if samples.dtype == np.bool_:
        np.multiply(samples, MASK_TRUE, out=out, casting="unsafe")
        return out
    if not np.issubdtype(samples.dtype, np.integer):
        samples = samples.astype(np.int64)
    np.bitwise_and(samples, np.uint8(BYTE_MASK), out=out, casting="unsafe")
    return out
