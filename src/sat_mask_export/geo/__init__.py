"""Raster products, mask expressions and mask sinks."""

from .expression import MaskExpression
from .product import (
    RasterProduct,
    RasterioProduct,
    InMemoryProduct,
    open_product,
)
from .sinks import (
    MaskSink,
    RawByteSink,
    GeoTiffMaskSink,
    create_sink,
)

__all__ = [
    "MaskExpression",
    "RasterProduct",
    "RasterioProduct",
    "InMemoryProduct",
    "open_product",
    "MaskSink",
    "RawByteSink",
    "GeoTiffMaskSink",
    "create_sink",
]
