"""
Typed failures raised by the listing and transaction workflows.

Every error carries a stable ``kind`` (surfaced to API clients as the
``error`` field), a human-readable message and the HTTP status the API
layer maps it to.
"""


class AppError(Exception):
    """Base application error."""

    kind: str = "InternalError"
    http_status: int = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# --- 400: validation ---

class ValidationError(AppError):
    kind = "ValidationError"
    http_status = 400


class InvalidSerialFormatError(AppError):
    kind = "InvalidSerialFormat"
    http_status = 400


class ListingNotAvailableError(AppError):
    kind = "ListingNotAvailable"
    http_status = 400

    def __init__(self, listing_id: str) -> None:
        self.listing_id = listing_id
        super().__init__("This watch is no longer available for purchase")


class SelfPurchaseError(AppError):
    kind = "SelfPurchase"
    http_status = 400

    def __init__(self) -> None:
        super().__init__("You cannot purchase your own listing")


class PaymentFailedError(AppError):
    kind = "PaymentFailed"
    http_status = 400

    def __init__(self) -> None:
        super().__init__("Payment simulation failed. Please try again.")


class InvalidStatusError(AppError):
    kind = "InvalidStatus"
    http_status = 400

    def __init__(self, status: str, allowed: list[str]) -> None:
        self.status = status
        super().__init__(f"Status must be one of: {', '.join(allowed)}")


# --- 401 / 403: auth ---

class AuthenticationError(AppError):
    kind = "AuthenticationRequired"
    http_status = 401


class ForbiddenError(AppError):
    kind = "Forbidden"
    http_status = 403


# --- 404 ---

class NotFoundError(AppError):
    kind = "NotFound"
    http_status = 404

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"No {entity} found with ID: {entity_id}")


# --- 409: conflicts ---

class DuplicateSerialNumberError(AppError):
    kind = "DuplicateSerialNumber"
    http_status = 409

    def __init__(self, serial_number: str) -> None:
        self.serial_number = serial_number
        super().__init__(
            f"A watch with serial number {serial_number} is already listed. "
            "Duplicate serial numbers are not allowed."
        )


class DuplicateDocumentError(AppError):
    """A write would break one of the store's unique indexes."""

    kind = "DuplicateDocument"
    http_status = 409

    def __init__(self, collection: str, index: str | None = None) -> None:
        self.collection = collection
        self.index = index
        super().__init__(f"A conflicting {collection} document already exists")


class ConcurrentUpdateError(AppError):
    kind = "ConcurrentUpdate"
    http_status = 409

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"The {entity} {entity_id} kept changing during the update. Please try again.")


class InvalidStateTransitionError(AppError):
    kind = "InvalidStateTransition"
    http_status = 409

    def __init__(self, entity: str, from_status: str, to_status: str, allowed: list[str]) -> None:
        self.entity = entity
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid {entity} transition from {from_status} to {to_status}. "
            f"Allowed transitions: {allowed}"
        )


# --- 503: storage ---

class StoreUnavailableError(AppError):
    kind = "StoreUnavailable"
    http_status = 503
