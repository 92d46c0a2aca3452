"""Row-by-row sinks for mask images."""

import logging
from pathlib import Path
from typing import Union

import numpy as np
import rasterio
from rasterio.errors import RasterioError
from rasterio.windows import Window

from sat_mask_export.configs.constants import OutputFormat
from sat_mask_export.core.errors import WriteError
from sat_mask_export.core.utils import make_dirs_if_not_exists


class MaskSink:
    """
    Append-only destination for mask scanlines. Rows must arrive in order, each exactly `width`
    bytes long, and at most `height` of them.
    """
    def __init__(self, path: Union[str, Path], width: int, height: int):
        self.path = str(path)
        self.width = width
        self.height = height
        self.rows_written = 0
        self.bytes_written = 0
        self.closed = False

    def _write(self, row: np.ndarray, y: int) -> None:
        raise NotImplementedError

    def _close(self) -> None:
        raise NotImplementedError

    def write_row(self, row: np.ndarray) -> None:
        if self.closed:
            raise WriteError(self.path, f"sink {self.path} is closed", row=self.rows_written)
        if len(row) != self.width:
            raise WriteError(
                self.path,
                f"row of {len(row)} bytes does not match width {self.width}",
                row=self.rows_written,
            )
        if self.rows_written >= self.height:
            raise WriteError(self.path, f"sink already holds all {self.height} rows", row=self.rows_written)
        self._write(row, self.rows_written)
        self.rows_written += 1
        self.bytes_written += self.width

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._close()
        except (OSError, RasterioError) as e:
            raise WriteError(self.path, f"failed to close {self.path}: {e}") from e

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.close()
            return False
        # a close failure never replaces the pending error
        try:
            self.close()
        except WriteError as close_error:
            logging.error(f"{close_error} (while handling {exc_type.__name__}: {exc})")
        return False


class RawByteSink(MaskSink):
    """Headerless row-major byte stream, one byte per pixel. Truncates an existing file."""

    def __init__(self, path: Union[str, Path], width: int, height: int):
        super().__init__(path, width, height)
        self._fh = open(self.path, "wb")

    def _write(self, row: np.ndarray, y: int) -> None:
        self._fh.write(np.asarray(row, dtype=np.uint8).tobytes())

    def _close(self) -> None:
        self._fh.close()


class GeoTiffMaskSink(MaskSink):
    """
    Single-band uint8 GeoTIFF written one row window at a time.
    Carries the source CRS and transform when known.
    """
    def __init__(self, path: Union[str, Path], width: int, height: int, crs=None, transform=None):
        super().__init__(path, width, height)
        profile = {
            'driver': 'GTiff',
            'height': height,
            'width': width,
            'count': 1,
            'dtype': 'uint8',
        }
        if crs is not None:
            profile['crs'] = crs
        if transform is not None:
            profile['transform'] = transform
        self.dst = rasterio.open(self.path, 'w', **profile)

    def _write(self, row: np.ndarray, y: int) -> None:
        self.dst.write(
            np.asarray(row, dtype=np.uint8).reshape(1, self.width),
            1,
            window=Window(0, y, self.width, 1),
        )

    def _close(self) -> None:
        self.dst.close()


def create_sink(
    path: Union[str, Path],
    width: int,
    height: int,
    fmt: Union[str, OutputFormat] = OutputFormat.RAW,
    crs=None,
    transform=None,
) -> MaskSink:
    """
    Create the destination for a mask image, overwriting any existing file at `path`.
    Missing parent directories are created.

    Args:
        path: Destination file path
        width: Raster width in pixels
        height: Raster height in pixels
        fmt: "raw" for a headerless byte stream, "gtiff" for a georeferenced GeoTIFF
        crs: Optional CRS for GeoTIFF output
        transform: Optional affine transform for GeoTIFF output

    Raises:
        WriteError: if the destination cannot be created
    """
    fmt = OutputFormat(fmt)
    try:
        make_dirs_if_not_exists(Path(path).parent)
        if fmt is OutputFormat.GTIFF:
            sink = GeoTiffMaskSink(path, width, height, crs=crs, transform=transform)
        else:
            sink = RawByteSink(path, width, height)
    except (OSError, RasterioError) as e:
        raise WriteError(path, f"cannot create {path}: {e}") from e
    logging.info(f"Created {fmt} mask sink {path} for {width} x {height} pixels")
    return sink
