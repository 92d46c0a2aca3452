"""Raster products exposing flag bands and per-row mask evaluation."""

import logging
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple, Union

import numpy as np
import rasterio
from rasterio.errors import RasterioError
from rasterio.windows import Window

from sat_mask_export.configs.constants import DEFAULT_BAND_PREFIX, FLAG_TAG_PREFIX
from sat_mask_export.core.errors import OpenError
from sat_mask_export.geo.expression import MaskExpression


def parse_flag_tags(tags: Mapping[str, str]) -> Dict[str, int]:
    """
    Extract a flag coding from band tags of the form FLAG_<NAME>=<bitmask>.
    Bitmasks may be decimal or prefixed hex/binary ("0x04", "0b100").
    """
    coding = {}
    for key, value in tags.items():
        if not key.startswith(FLAG_TAG_PREFIX):
            continue
        flag_name = key[len(FLAG_TAG_PREFIX):]
        try:
            coding[flag_name] = int(str(value).strip(), 0)
        except ValueError:
            logging.warning(f"Ignoring flag tag {key}={value!r}: not an integer bitmask")
    return coding


class RasterProduct:
    """
    A raster product of fixed width and height with named bands.
    A band carrying a flag coding (flag name -> bitmask) is a flag dataset and can be
    referenced in mask expressions as <band>.<FLAG>.

    Subclasses provide band_names, flag_coding and read_row.
    """
    def __init__(self, name: str, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Product dimensions must be positive, got {width} x {height}")
        self._name = name
        self._width = int(width)
        self._height = int(height)
        self._expressions: Dict[str, MaskExpression] = {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def crs(self):
        return None

    @property
    def transform(self):
        return None

    @property
    def band_names(self) -> Tuple[str, ...]:
        raise NotImplementedError

    def flag_coding(self, band: str) -> Dict[str, int]:
        raise NotImplementedError

    def read_row(self, band: str, y: int) -> np.ndarray:
        raise NotImplementedError

    def _check_row(self, y: int) -> None:
        if not 0 <= y < self._height:
            raise IndexError(f"Row {y} out of range for product of height {self._height}")

    def compile_expression(self, expression: str) -> MaskExpression:
        if expression not in self._expressions:
            self._expressions[expression] = MaskExpression.compile(expression, self)
        return self._expressions[expression]

    def evaluate_row(self, expression: Union[str, MaskExpression], y: int) -> np.ndarray:
        """
        Evaluate a mask expression over the single scanline y.
        Returns a uint8 array of `width` values, 255 where the expression holds and 0 elsewhere.
        """
        if isinstance(expression, str):
            expression = self.compile_expression(expression)
        return expression.evaluate_row(self, y)

    def close(self) -> None:
        self._expressions.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class RasterioProduct(RasterProduct):
    """
    Product backed by a read-only rasterio dataset.
    Bands are named by their description (band_<i> when missing); flag codings are read from band tags.
    """
    def __init__(self, path: Union[str, Path]):
        self.path = str(path)
        self.ds = rasterio.open(self.path)
        try:
            super().__init__(Path(self.path).stem, self.ds.width, self.ds.height)
            self._band_index: Dict[str, int] = {}
            self._flag_codings: Dict[str, Dict[str, int]] = {}
            for bidx, desc in zip(self.ds.indexes, self.ds.descriptions):
                band_name = desc if desc else f"{DEFAULT_BAND_PREFIX}{bidx}"
                if band_name in self._band_index:
                    logging.warning(f"Duplicate band name {band_name} in {self.path}; keeping band {bidx}")
                self._band_index[band_name] = bidx
                self._flag_codings[band_name] = parse_flag_tags(self.ds.tags(bidx))
        except Exception:
            self.ds.close()
            raise

    @property
    def crs(self):
        return self.ds.crs

    @property
    def transform(self):
        return self.ds.transform

    @property
    def band_names(self) -> Tuple[str, ...]:
        return tuple(self._band_index)

    def flag_coding(self, band: str) -> Dict[str, int]:
        return dict(self._flag_codings[band])

    def read_row(self, band: str, y: int) -> np.ndarray:
        self._check_row(y)
        return self.ds.read(self._band_index[band], window=Window(0, y, self.width, 1))[0]

    def close(self) -> None:
        super().close()
        self.ds.close()


class InMemoryProduct(RasterProduct):
    """
    Product holding its bands as numpy arrays. Every band has shape (height, width).
    """
    def __init__(
        self,
        name: str,
        width: int,
        height: int,
        crs: Optional[Union[str, int]] = None,
        transform=None,
    ):
        super().__init__(name, width, height)
        self._crs = crs
        self._transform = transform
        self._bands: Dict[str, np.ndarray] = {}
        self._flag_codings: Dict[str, Dict[str, int]] = {}

    @property
    def crs(self):
        return self._crs

    @property
    def transform(self):
        return self._transform

    @property
    def band_names(self) -> Tuple[str, ...]:
        return tuple(self._bands)

    def add_band(
        self,
        name: str,
        data: np.ndarray,
        flag_coding: Optional[Mapping[str, int]] = None,
    ) -> None:
        """
        Add a band to the product. The band must match the product size.

        Args:
            name: Band name, unique within the product
            data: (height, width) array of raw band values
            flag_coding: Optional mapping flag name -> bitmask making the band a flag dataset
        """
        data = np.asarray(data)
        if data.shape != (self.height, self.width):
            raise ValueError(
                f"Band {name} has shape {data.shape}, expected ({self.height}, {self.width})"
            )
        if name in self._bands:
            raise ValueError(f"Product {self.name} already has a band named {name}")
        self._bands[name] = data
        self._flag_codings[name] = {k: int(v) for k, v in (flag_coding or {}).items()}

    def flag_coding(self, band: str) -> Dict[str, int]:
        return dict(self._flag_codings[band])

    def read_row(self, band: str, y: int) -> np.ndarray:
        self._check_row(y)
        return self._bands[band][y]

    def write(self, path: Union[str, Path]) -> Path:
        """
        Save the product as a multi-band GeoTIFF. Band names go to band descriptions and flag
        codings to FLAG_<NAME> band tags, so open_product(path) reads back the same product.
        """
        if not self._bands:
            raise ValueError(f"Product {self.name} has no bands to write")
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        dtype = np.result_type(*self._bands.values())
        if dtype == np.bool_:
            dtype = np.dtype(np.uint8)
        profile = {
            'driver': 'GTiff',
            'height': self.height,
            'width': self.width,
            'count': len(self._bands),
            'dtype': dtype.name,
        }
        if self.crs is not None:
            profile['crs'] = self.crs
        if self.transform is not None:
            profile['transform'] = self.transform
        with rasterio.open(path, 'w', **profile) as dst:
            for bidx, (band_name, data) in enumerate(self._bands.items(), start=1):
                dst.write(data.astype(dtype, copy=False), bidx)
                dst.set_band_description(bidx, band_name)
                coding = self._flag_codings[band_name]
                if coding:
                    dst.update_tags(bidx, **{f"{FLAG_TAG_PREFIX}{k}": str(v) for k, v in coding.items()})
        logging.info(f"Wrote product {self.name} ({len(self._bands)} bands) to {path}")
        return path


def open_product(path: Union[str, Path]) -> RasterProduct:
    """
    Open a raster product read-only. Only the dataset header is read; band data is read per row.

    Raises:
        OpenError: if the product cannot be opened
    """
    try:
        product = RasterioProduct(path)
    except (RasterioError, OSError, ValueError) as e:
        raise OpenError(path, f"cannot open product {path}: {e}") from e
    logging.info(
        f"Opened product {product.name}: {product.width} x {product.height} pixels, "
        f"bands {list(product.band_names)}"
    )
    return product
