from fastapi import status


class StockSageError(Exception):
    """Base class for errors that are reported to the caller as-is."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(StockSageError):
    """Missing, inactive, or owned by another account."""

    status_code = status.HTTP_404_NOT_FOUND


class InsufficientStockError(StockSageError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, product_name: str, available: int):
        super().__init__(
            f"Insufficient stock for {product_name}. Available: {available}"
        )
        self.product_name = product_name
        self.available = available


class InvalidInputError(StockSageError):
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(StockSageError):
    """Unique key collision (bill number, barcode, email)."""

    status_code = status.HTTP_409_CONFLICT


class StorageError(StockSageError):
    # Never leak driver messages to the client
    def __init__(self, message: str = "Server error"):
        super().__init__(message)
