"""Error kinds raised by the mask export pipeline."""
from typing import Optional


class MaskExportError(Exception):
    """Base class for every fatal export error. Carries a human-readable message."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class OpenError(MaskExportError):
    """Exception raised when the source product cannot be opened or read.

    Attributes:
        path -- locator of the source product
        message -- explanation of the error
    """

    def __init__(self, path, message: Optional[str] = None):
        self.path = str(path)
        super().__init__(message or f"cannot open product {self.path}")


class ExpressionError(MaskExportError):
    """Exception raised for empty, malformed or unresolvable mask expressions.

    Attributes:
        expression -- the offending expression text
        message -- explanation of the error
    """

    def __init__(self, expression: str, message: Optional[str] = None):
        self.expression = expression
        super().__init__(message or f"invalid mask expression '{expression}'")


class EvalError(MaskExportError):
    """Exception raised when a row of the mask cannot be evaluated.

    Attributes:
        row -- index of the failing scanline
        message -- explanation of the error
    """

    def __init__(self, row: int, message: Optional[str] = None):
        self.row = row
        super().__init__(message or f"failed to evaluate mask row {row}")


class WriteError(MaskExportError):
    """Exception raised when the destination cannot be created or written.

    Attributes:
        path -- locator of the destination, if known
        row -- index of the scanline being written, None if the failure happened at creation
        message -- explanation of the error
    """

    def __init__(self, path=None, message: Optional[str] = None, row: Optional[int] = None):
        self.path = None if path is None else str(path)
        self.row = row
        if message is None:
            message = f"cannot write {self.path}" if row is None else f"cannot write row {row} to {self.path}"
        super().__init__(message)
