"""
Boolean flag expressions evaluated per scanline.

An expression references flags as <dataset>.<FLAG>, e.g. "l1_flags.INVALID", or whole bands by
name (true where the band is non-zero). Operators may be written as AND/OR/NOT (any case),
&/|/! or &&/||, and grouped with parentheses:

    "NOT l1_flags.INVALID AND NOT l1_flags.BRIGHT"
    "(l1_flags.COASTLINE OR l1_flags.LAND_OCEAN) AND NOT l1_flags.GLINT_RISK"
    "!(l1_flags.BRIGHT | l1_flags.GLINT_RISK | l1_flags.INVALID | l1_flags.SUSPECT)"

The operators are rewritten to Python's spelling and parsed with the `ast` module. References are
resolved against the product's bands and flag codings at compile time, so an expression that
compiles can only fail later on a read error.
"""
from __future__ import annotations

import ast
import re
from dataclasses import dataclass, field
from functools import reduce
from typing import Callable, Dict, List, Tuple

import numpy as np

from sat_mask_export.core.errors import ExpressionError
from sat_mask_export.core.masks import bool_to_mask_values, flag_set_mask

RowData = Dict[str, np.ndarray]
RowPredicate = Callable[[RowData], np.ndarray]

# Order matters: doubled symbols before single ones
_OPERATOR_SPELLINGS = [
    (re.compile(r"&&"), " and "),
    (re.compile(r"\|\|"), " or "),
    (re.compile(r"&"), " and "),
    (re.compile(r"\|"), " or "),
    (re.compile(r"!"), " not "),
    (re.compile(r"\bAND\b", re.IGNORECASE), " and "),
    (re.compile(r"\bOR\b", re.IGNORECASE), " or "),
    (re.compile(r"\bNOT\b", re.IGNORECASE), " not "),
    (re.compile(r"\bTRUE\b", re.IGNORECASE), " True "),
    (re.compile(r"\bFALSE\b", re.IGNORECASE), " False "),
]


def to_python_syntax(expression: str) -> str:
    """Rewrite the mask operator spellings into Python boolean operators."""
    text = expression
    for pattern, replacement in _OPERATOR_SPELLINGS:
        text = pattern.sub(replacement, text)
    return " ".join(text.split())


class _Resolver:
    """Turns a parsed expression into a row predicate bound to one product's schema."""

    def __init__(self, expression: str, product):
        self.expression = expression
        self.product = product
        self.band_names = set(product.band_names)
        self.bands: List[str] = []

    def _use_band(self, band: str) -> None:
        if band not in self.bands:
            self.bands.append(band)

    def _fail(self, message: str) -> ExpressionError:
        return ExpressionError(self.expression, f"{message} in '{self.expression}'")

    def resolve(self, node: ast.AST) -> RowPredicate:
        if isinstance(node, ast.BoolOp):
            parts = [self.resolve(v) for v in node.values]
            op = np.logical_and if isinstance(node.op, ast.And) else np.logical_or
            return lambda rows: reduce(op, (p(rows) for p in parts))

        if isinstance(node, ast.UnaryOp) and isinstance(node.op, ast.Not):
            operand = self.resolve(node.operand)
            return lambda rows: np.logical_not(operand(rows))

        if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name):
            dataset, flag = node.value.id, node.attr
            if dataset not in self.band_names:
                raise self._fail(f"unknown flag dataset '{dataset}'")
            coding = self.product.flag_coding(dataset)
            if not coding:
                raise self._fail(f"band '{dataset}' is not a flag dataset")
            if flag not in coding:
                raise self._fail(f"unknown flag '{flag}' in dataset '{dataset}'")
            bitmask = coding[flag]
            self._use_band(dataset)
            return lambda rows: flag_set_mask(rows[dataset], bitmask)

        if isinstance(node, ast.Name):
            band = node.id
            if band not in self.band_names:
                raise self._fail(f"unknown band '{band}'")
            self._use_band(band)
            return lambda rows: np.asarray(rows[band]) != 0

        if isinstance(node, ast.Constant) and isinstance(node.value, bool):
            value = node.value
            width = self.product.width
            return lambda rows: np.full(width, value, dtype=bool)

        raise self._fail(f"unsupported term '{ast.unparse(node)}'")


@dataclass(frozen=True)
class MaskExpression:
    """
    A mask expression compiled against a product's bands and flag codings.
    Use MaskExpression.compile rather than the constructor.
    """
    text: str
    bands: Tuple[str, ...]
    width: int
    predicate: RowPredicate = field(repr=False, compare=False)

    @classmethod
    def compile(cls, text: str, product) -> MaskExpression:
        """
        Validate `text` and resolve its references against `product`.

        Raises:
            ExpressionError: if the expression is empty, malformed or references
                             unknown bands/flags
        """
        if text is None or not text.strip():
            raise ExpressionError(text or "", "mask expression is empty")
        try:
            tree = ast.parse(to_python_syntax(text), mode="eval")
        except SyntaxError as e:
            raise ExpressionError(text, f"syntax error in '{text}': {e.msg}") from e
        resolver = _Resolver(text, product)
        predicate = resolver.resolve(tree.body)
        return cls(
            text=text,
            bands=tuple(resolver.bands),
            width=product.width,
            predicate=predicate,
        )

    def evaluate_row(self, product, y: int) -> np.ndarray:
        """
        Evaluate the expression over scanline y of `product`.
        Only the bands the expression references are read, one row each.
        """
        rows = {band: product.read_row(band, y) for band in self.bands}
        return bool_to_mask_values(self.predicate(rows))
