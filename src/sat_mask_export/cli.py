#!/usr/bin/env python3
"""
Write out the bit-mask image of a raster product.

The mask is written as a raw byte stream holding one byte per pixel of the product scene
(255 where the expression holds, 0 elsewhere), row by row, with no header.

Usage:
  write-mask <input-file> <output-file> <mask-expr> [--format raw|gtiff] [--log] [--log-every N]

Example:
  write-mask MER_RR__1P.tif mask.raw "NOT l1_flags.INVALID AND NOT l1_flags.BRIGHT"
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from sat_mask_export.configs.constants import USAGE, OutputFormat
from sat_mask_export.core.errors import EvalError, ExpressionError, OpenError, WriteError
from sat_mask_export.pipelines.export import export_mask


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="write-mask",
        description="Write the bit-mask image of a raster product, one scanline at a time.",
    )
    parser.add_argument(
        "params",
        nargs="*",
        metavar="ARG",
        help="<input-file> <output-file> <mask-expr>",
    )
    parser.add_argument(
        "--format",
        choices=[f.value for f in OutputFormat],
        default=OutputFormat.RAW.value,
        help="raw byte stream (default) or single-band GeoTIFF",
    )
    parser.add_argument("--log-every", type=int, default=None, help="Log progress every N rows")
    parser.add_argument("--log", action="store_true", help="Enable logging output")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if len(args.params) < 3:
        print(USAGE)
        return 0

    if args.log:
        logging.basicConfig(level=logging.INFO)

    input_path, output_path, mask_expr = args.params[:3]
    try:
        report = export_mask(
            input_path,
            output_path,
            mask_expr,
            output_format=args.format,
            log_every=args.log_every,
        )
    except OpenError as e:
        print(f"I/O error: {e}", file=sys.stderr)
        return 1
    except ExpressionError as e:
        print(f"bit-mask syntax error: {e}", file=sys.stderr)
        return 1
    except EvalError as e:
        print(f"evaluation error: {e}", file=sys.stderr)
        return 1
    except WriteError as e:
        print(f"write error: {e}", file=sys.stderr)
        return 1

    print(
        f"writing mask image file {report.output_path} containing "
        f"{report.width} x {report.height} pixels of type byte..."
    )
    print("OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
