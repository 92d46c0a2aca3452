from __future__ import annotations
import logging
from typing import Callable, Optional, Sequence, Union

import numpy as np

from sat_mask_export.core.errors import EvalError, MaskExportError, WriteError
from sat_mask_export.core.masks import to_mask_bytes
from sat_mask_export.core.utils import get_memory_mb, get_scanline_memory

# mask samples for row y, `width` values
RowEvaluator = Callable[[int], Union[np.ndarray, Sequence[int]]]

# receives one converted row; the buffer is reused, so copy it if you keep it
RowWriter = Callable[[np.ndarray], None]

def stream_scanlines(
    width: int,
    height: int,
    eval_row: RowEvaluator,
    write_row: RowWriter,
    *,
    log_every: Optional[int] = None,
) -> int:
    """
    General pattern:
    for each row y from top to bottom
    evaluate the mask samples of that row only
    truncate each sample to a byte in a single scanline buffer
    hand the buffer to the writer before touching the next row

    Stops at the first failing row; rows already written are left in place.

    Returns:
        int: number of bytes written (width * height)

    Raises:
        EvalError: if evaluating a row fails or returns the wrong number of samples
        WriteError: if writing a row fails
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Raster dimensions must be positive, got {width} x {height}")

    scanline = np.zeros(width, dtype=np.uint8)
    bytes_written = 0
    logging.info(
        f"Streaming {height} rows of {width} pixels "
        f"(scanline buffer {get_scanline_memory(width):.1f}KB)"
    )

    for y in range(height):
        try:
            samples = eval_row(y)
        except MaskExportError:
            raise
        except Exception as e:
            raise EvalError(y, f"failed to evaluate mask row {y}: {e}") from e

        if isinstance(samples, (bytes, bytearray, memoryview)):
            samples = np.frombuffer(samples, dtype=np.uint8)
        samples = np.asarray(samples)
        if samples.shape != (width,):
            raise EvalError(y, f"mask row {y} has shape {samples.shape}, expected ({width},)")
        to_mask_bytes(samples, out=scanline)
        del samples

        try:
            write_row(scanline)
        except MaskExportError:
            raise
        except Exception as e:
            raise WriteError(message=f"failed to write mask row {y}: {e}", row=y) from e
        bytes_written += width

        if log_every and (y + 1) % log_every == 0:
            logging.info(f"Wrote row {y + 1}/{height} - Memory: {get_memory_mb():.0f}MB")

    logging.info(f"Finished streaming: {bytes_written} bytes")
    return bytes_written
