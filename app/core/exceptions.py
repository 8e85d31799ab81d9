from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class InvalidClassError(ServiceError):
    """Raised when a class label cannot be mapped to a known class level."""

    def __init__(self, label) -> None:
        super().__init__(f'Invalid class: "{label}"', status.HTTP_400_BAD_REQUEST)
        self.label = label


class OverpaymentError(ServiceError):
    """Payment exceeds the remaining due for a component (or a term of it)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class PaymentConflictError(ServiceError):
    """Payment could not be written because of a concurrent update or an identifier clash."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)
