"""
Domain errors.

Business-rule errors are raised before any row is mutated. Storage errors
(SQLAlchemyError) are not wrapped and reach the caller as they are.
"""


class FmsError(Exception):
    """Base exception for every business error of the application"""
    pass


class NotFoundError(FmsError):
    """Referenced material, warehouse or maintenance entity does not exist"""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


# ===== INVENTORY =====

class InventoryError(FmsError):
    """Base exception for stock ledger errors"""
    pass


class InvalidQuantityError(InventoryError):
    """Quantity is not positive, or an adjustment target is negative"""
    pass


class InsufficientStockError(InventoryError):
    """Requested decrement exceeds the quantity on hand"""

    def __init__(self, available, requested):
        self.available = available
        self.requested = requested
        super().__init__(f"Insufficient stock. Available: {available}, Requested: {requested}")


class SameWarehouseError(InventoryError):
    """Transfer source and destination are the same warehouse"""
    pass


class StockValidationError(InventoryError):
    """Any other invalid movement input (e.g. adjustment without remarks)"""
    pass


# ===== LIFECYCLE =====

class LifecycleError(FmsError):
    """Base exception for maintenance lifecycle errors"""
    pass


class InvalidTransitionError(LifecycleError):
    """Status change not allowed from the current status"""

    def __init__(self, entity: str, current: str, target: str):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"Cannot change {entity} status from {current} to {target}")


class InvalidStateError(LifecycleError):
    """Operation not allowed while the entity is in its current status"""
    pass


# ===== DOCUMENT NUMBERING =====

class SequenceError(FmsError):
    """Base exception for document number generation"""
    pass


class SequenceExhaustedError(SequenceError):
    """The counter for a prefix has no values left for the configured width"""
    pass


class ConflictRetryExceededError(SequenceError):
    """A concurrently created row kept winning the race within the allowed retries"""
    pass
