"""Exception types raised by the analysis engine and its collaborators."""


class BiasLensError(Exception):
    """Base class for errors the API reports back to the caller."""


class EmptyInputError(BiasLensError, ValueError):
    """Raised when an analysis is requested on zero trades."""

    def __init__(self, message: str = "No trades to analyze"):
        super().__init__(message)


class TradeParseError(BiasLensError, ValueError):
    """Raised when an imported row cannot be turned into a Trade."""

    def __init__(self, message: str, row: int | None = None):
        self.row = row
        super().__init__(f"Row {row}: {message}" if row is not None else message)
