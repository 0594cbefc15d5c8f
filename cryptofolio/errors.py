"""Application-level exceptions."""


class CryptofolioError(Exception):
    """Base exception for portfolio errors."""

    def __init__(self, message: str, code: str = "CRYPTOFOLIO_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class FetchFailure(CryptofolioError):
    """Market data could not be obtained."""

    def __init__(self, message: str, code: str = "FETCH_FAILURE"):
        super().__init__(message, code=code)


class NetworkError(FetchFailure):
    """Transport failure or non-success HTTP status."""

    def __init__(self, message: str):
        super().__init__(message, code="NETWORK_ERROR")


class DecodeError(FetchFailure):
    """Response body could not be decoded into market data."""

    def __init__(self, message: str):
        super().__init__(message, code="DECODE_ERROR")


class FetchTimeout(FetchFailure):
    """Fetch did not complete within its time bound."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Market data fetch timed out after {timeout_seconds:g}s",
            code="FETCH_TIMEOUT",
        )


class StorageUnavailable(CryptofolioError):
    """The holdings store could not be read or written."""

    def __init__(self, message: str):
        super().__init__(message, code="STORAGE_UNAVAILABLE")


class ValidationError(CryptofolioError):
    """Raised when input validation fails."""

    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class InvalidStateError(CryptofolioError):
    """Operation not allowed in the controller's current state."""

    def __init__(self, operation: str, state: str):
        super().__init__(
            f"Cannot {operation} while controller is {state}",
            code="INVALID_STATE",
        )
