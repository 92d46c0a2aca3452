from __future__ import annotations
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from sat_mask_export.configs.constants import OutputFormat
from sat_mask_export.core.errors import ExpressionError, MaskExportError, WriteError
from sat_mask_export.core.utils import get_memory_mb
from sat_mask_export.geo.expression import MaskExpression
from sat_mask_export.geo.product import open_product
from sat_mask_export.geo.sinks import create_sink
from sat_mask_export.pipelines.config import ExportConfig, init_export_config
from sat_mask_export.pipelines.scanlines import stream_scanlines

@dataclass(frozen=True)
class ExportReport:
    input_path: str
    output_path: str
    expression: str
    width: int
    height: int
    bytes_written: int
    output_format: OutputFormat
    elapsed_s: float

    @property
    def pixels(self) -> int:
        return self.width * self.height

def validate_output_path(output_path: Union[str, Path]) -> None:
    """
    Syntactic check of the destination path, done before any I/O.
    """
    path = os.fspath(output_path)
    if not path or not path.strip():
        raise WriteError(path, "output path is empty")
    if "\x00" in path:
        raise WriteError(path, f"output path {path!r} contains a NUL byte")
    if path.endswith(("/", os.sep)):
        raise WriteError(path, f"output path {path} names a directory")

def run_export(cfg: ExportConfig) -> ExportReport:
    """
    Export the mask described by `cfg`:
    validate arguments
    open the product read-only and compile the expression against it
    create (truncate) the destination
    stream the mask one scanline at a time
    Product and sink are closed on every exit path.

    Raises:
        OpenError: the product cannot be opened
        ExpressionError: the expression is empty or does not compile against the product
        EvalError: a row cannot be evaluated (earlier rows stay in the output)
        WriteError: the destination cannot be created or written (earlier rows stay in the output)
    """
    if cfg.expression is None or not cfg.expression.strip():
        raise ExpressionError(cfg.expression or "", "mask expression is empty")
    validate_output_path(cfg.output_path)

    input_path, output_path = str(cfg.input_path), str(cfg.output_path)
    start = time.time()
    try:
        with open_product(input_path) as product:
            width, height = product.width, product.height
            expression = MaskExpression.compile(cfg.expression, product)
            logging.info(
                f"writing mask image file {output_path} containing "
                f"{width} x {height} pixels of type byte..."
            )
            with create_sink(
                output_path,
                width,
                height,
                fmt=cfg.output_format,
                crs=product.crs,
                transform=product.transform,
            ) as sink:
                bytes_written = stream_scanlines(
                    width,
                    height,
                    lambda y: expression.evaluate_row(product, y),
                    sink.write_row,
                    log_every=cfg.log_every,
                )
    except MaskExportError as e:
        if isinstance(e, WriteError) and e.path is None:
            e.path = output_path
        logging.error(f"Mask export {input_path} -> {output_path} failed: {e}")
        raise

    elapsed = time.time() - start
    logging.info(f"Mask export time for {Path(input_path).stem}: {elapsed:.2f} seconds")
    logging.info(f"Final memory: {get_memory_mb():.0f}MB")
    return ExportReport(
        input_path=input_path,
        output_path=output_path,
        expression=cfg.expression,
        width=width,
        height=height,
        bytes_written=bytes_written,
        output_format=cfg.output_format,
        elapsed_s=elapsed,
    )

def export_mask(
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    expression: str,
    *,
    output_format: Union[str, OutputFormat] = OutputFormat.RAW,
    log_every: Optional[int] = None,
) -> ExportReport:
    """
    Write the bit-mask image of `expression` over the product at `input_path` to `output_path`.
    See run_export.
    """
    cfg = init_export_config(
        input_path=input_path,
        output_path=output_path,
        expression=expression,
        output_format=output_format,
        log_every=log_every,
    )
    return run_export(cfg)
