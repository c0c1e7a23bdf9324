"""
Errors raised at the statement boundary.

The fragment parser itself never raises for odd input; these cover the
checks made around it when a PDF comes in.
"""


class StatementError(ValueError):
    """Base class for statements that cannot be turned into transactions."""


class InvalidFileTypeError(StatementError):
    def __init__(self, filename):
        super().__init__(f"Invalid file type, expected a PDF: {filename}")


class NoTextFoundError(StatementError):
    def __init__(self, filename):
        super().__init__(f"No text found in {filename}; it may be a scanned image PDF")


class NoTransactionsFoundError(StatementError):
    def __init__(self, filename):
        super().__init__(
            f"No transactions found in {filename}; is it a CMB credit card statement?"
        )
