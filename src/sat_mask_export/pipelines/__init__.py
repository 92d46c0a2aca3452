"""Scanline streaming and the mask export driver."""

from .config import ExportConfig, init_export_config
from .scanlines import stream_scanlines
from .export import ExportReport, export_mask, run_export

__all__ = [
    "ExportConfig",
    "init_export_config",
    "stream_scanlines",
    "ExportReport",
    "export_mask",
    "run_export",
]
