"""Line-wise bit-mask export for satellite raster products."""

__version__ = "0.1.0"

# Import submodules to make them available at package level
from . import configs
from . import core
from . import geo
from . import pipelines

from .pipelines.export import export_mask

__all__ = [
    "configs",
    "core",
    "geo",
    "pipelines",
    "export_mask",
]
