"""Core utility functions for monitoring and diagnostics."""
import numpy as np
import psutil
import os
from pathlib import Path

def get_scanline_memory(width, dtype: np.dtype = np.uint8, pow = 1) -> float:
    """
    Estimate the memory size of a single scanline buffer.

    Args:
        width: Width of the raster in pixels
        dtype: Data type of the buffer (default: uint8 mask bytes)
        pow: Power of 1024 to convert bytes to desired unit (default: 1 for KB)
    Returns:
        float: Estimated size in the requested unit
    """
    return (width * np.dtype(dtype).itemsize) / (1024 ** pow)

def get_memory_mb() -> float:
    """
    Get the current memory usage of the process in megabytes.

    Returns:
        float: Memory usage in MB
    """
    process = psutil.Process(os.getpid())
    return process.memory_info().rss / (1024 * 1024)

def make_dirs_if_not_exists(dir_path: str) -> None:
    """
    Create directories if they do not already exist.

    Args:
        dir_path: Path to the directory to create
    """
    Path(dir_path).mkdir(parents=True, exist_ok=True)
