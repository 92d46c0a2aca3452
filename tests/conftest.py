import numpy as np
import pytest
from rasterio.transform import from_origin

from sat_mask_export.geo.product import InMemoryProduct

# MERIS-like L1b flag coding
L1_FLAGS = {"INVALID": 1, "BRIGHT": 2, "LAND_OCEAN": 4, "COASTLINE": 8}

# 3 rows x 7 columns
L1_FLAG_DATA = np.array(
    [
        [0, 1, 2, 3, 4, 5, 0],
        [1, 1, 0, 0, 2, 6, 12],
        [0, 0, 8, 4, 4, 4, 1],
    ],
    dtype=np.uint8,
)


@pytest.fixture
def flag_product() -> InMemoryProduct:
    """Small 7 x 3 product with one flag dataset and one measurement band."""
    height, width = L1_FLAG_DATA.shape
    product = InMemoryProduct(
        "MER_RR__1P_TEST",
        width,
        height,
        crs="EPSG:4326",
        transform=from_origin(38.0, 65.0, 0.01, 0.01),
    )
    product.add_band("l1_flags", L1_FLAG_DATA.copy(), flag_coding=L1_FLAGS)
    product.add_band("radiance_1", np.arange(width * height, dtype=np.uint8).reshape(height, width))
    return product


@pytest.fixture
def flag_product_path(tmp_path, flag_product):
    """The flag product saved as a GeoTIFF."""
    return flag_product.write(tmp_path / "MER_RR__1P_TEST.tif")
