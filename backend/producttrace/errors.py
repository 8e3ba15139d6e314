"""Ledger error taxonomy.

Every rejected operation raises exactly one of these before touching any
state.  Each carries an HTTP status and a stable ``error_code`` so the API
layer can render it without knowing the individual kinds.

    LedgerError
    ├── AccessDeniedError         403
    │   ├── NotOwnerError                 admin-only call by non-admin
    │   ├── NotAuthorizedProducerError    caller / target is not a producer
    │   └── NotProductOwnerError          caller does not own the product
    ├── LedgerNotFoundError       404
    │   ├── ProductNotFoundError
    │   └── BatchNotFoundError
    ├── InvalidRequestError       422
    │   ├── ZeroAddressNotAllowedError
    │   ├── ArrayLengthMismatchError
    │   ├── ZeroQuantityNotAllowedError
    │   ├── QuantityOutOfRangeError
    │   └── NoInputsForProductionError
    └── StateConflictError        409
        ├── InvalidProductStageError
        │   └── BatchAlreadyPackagedError
        └── InsufficientProductQuantityError
"""

from fastapi import status

from producttrace.models.product import ProductStage
from producttrace.utils.numbering import MAX_LEDGER_INT


class LedgerError(Exception):
    """Base exception for ledger operation failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "LEDGER_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# ── Authorization ────────────────────────────────────────────

class AccessDeniedError(LedgerError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "ACCESS_DENIED"


class NotOwnerError(AccessDeniedError):
    error_code = "NOT_OWNER"

    def __init__(self, caller: str):
        self.caller = caller
        super().__init__(
            f"{caller or '<anonymous>'} is not the ledger administrator",
            {"caller": caller},
        )


class NotAuthorizedProducerError(AccessDeniedError):
    error_code = "NOT_AUTHORIZED_PRODUCER"

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(
            f"{identity or '<anonymous>'} is not an authorized producer",
            {"identity": identity},
        )


class NotProductOwnerError(AccessDeniedError):
    error_code = "NOT_PRODUCT_OWNER"

    def __init__(self, product_id: int, caller: str):
        self.product_id = product_id
        self.caller = caller
        super().__init__(
            f"{caller or '<anonymous>'} does not own product {product_id}",
            {"product_id": product_id, "caller": caller},
        )


# ── Lookups ──────────────────────────────────────────────────

class LedgerNotFoundError(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "RESOURCE_NOT_FOUND"


class ProductNotFoundError(LedgerNotFoundError):
    error_code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}", {"product_id": product_id})


class BatchNotFoundError(LedgerNotFoundError):
    error_code = "BATCH_NOT_FOUND"

    def __init__(self, batch_id: int):
        self.batch_id = batch_id
        super().__init__(f"Batch not found: {batch_id}", {"batch_id": batch_id})


# ── Input validation ─────────────────────────────────────────

class InvalidRequestError(LedgerError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "INVALID_REQUEST"


class ZeroAddressNotAllowedError(InvalidRequestError):
    error_code = "ZERO_ADDRESS_NOT_ALLOWED"

    def __init__(self):
        super().__init__("The null identity is not allowed here")


class ArrayLengthMismatchError(InvalidRequestError):
    error_code = "ARRAY_LENGTH_MISMATCH"

    def __init__(self, ids_length: int, quantities_length: int):
        super().__init__(
            f"{ids_length} consumed product id(s) but {quantities_length} quantity value(s)",
            {"ids_length": ids_length, "quantities_length": quantities_length},
        )


class ZeroQuantityNotAllowedError(InvalidRequestError):
    error_code = "ZERO_QUANTITY_NOT_ALLOWED"

    def __init__(self, product_id: int | None = None):
        self.product_id = product_id
        if product_id is None:
            message = "Quantity must be greater than zero"
        else:
            message = f"Quantity consumed from product {product_id} must be greater than zero"
        super().__init__(message, {"product_id": product_id} if product_id is not None else None)


class QuantityOutOfRangeError(InvalidRequestError):
    error_code = "QUANTITY_OUT_OF_RANGE"

    def __init__(self, quantity: int):
        self.quantity = quantity
        super().__init__(
            f"Quantity {quantity} exceeds the ledger maximum of {MAX_LEDGER_INT}",
            {"quantity": quantity, "maximum": MAX_LEDGER_INT},
        )


class NoInputsForProductionError(InvalidRequestError):
    error_code = "NO_INPUTS_FOR_PRODUCTION"

    def __init__(self):
        super().__init__("Production needs at least one consumed product")


# ── State conflicts ──────────────────────────────────────────

class StateConflictError(LedgerError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "STATE_CONFLICT"


class InvalidProductStageError(StateConflictError):
    error_code = "INVALID_PRODUCT_STAGE"

    def __init__(
        self,
        product_id: int,
        actual: ProductStage,
        required: ProductStage,
        message: str | None = None,
    ):
        self.product_id = product_id
        self.actual = actual
        self.required = required
        super().__init__(
            message or (
                f"Product {product_id} is in stage {actual.name}, "
                f"operation requires {required.name}"
            ),
            {
                "product_id": product_id,
                "actual": int(actual),
                "required": int(required),
            },
        )


class BatchAlreadyPackagedError(InvalidProductStageError):
    """The product's batch already carries a packaging time.

    Raised in place of the plain stage error when a product that was already
    packaged is packaged again.
    """

    error_code = "BATCH_ALREADY_PACKAGED"

    def __init__(self, product_id: int, batch_id: int, actual: ProductStage):
        self.batch_id = batch_id
        super().__init__(
            product_id,
            actual,
            ProductStage.PRODUCTION,
            message=f"Batch {batch_id} of product {product_id} is already packaged",
        )
        self.details["batch_id"] = batch_id


class InsufficientProductQuantityError(StateConflictError):
    error_code = "INSUFFICIENT_PRODUCT_QUANTITY"

    def __init__(self, product_id: int, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Product {product_id} has {available} available, {requested} requested",
            {"product_id": product_id, "requested": requested, "available": available},
        )
