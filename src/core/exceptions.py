"""
Domain exceptions for the quote-to-cash engine.

Provides specific exception types for different error scenarios.
"""

from decimal import Decimal
from typing import Any


class EngineError(Exception):
    """Base exception for all engine errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Validation Exceptions
class ValidationError(EngineError):
    """Input validation failed. Raised before any state is touched."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value is not None else None,
            },
        )


# Business Rule Exceptions
class BusinessRuleViolation(EngineError):
    """Base exception for rejected business operations."""

    pass


class DiscountExceedsLimitError(BusinessRuleViolation):
    """Discount is above the product's maximum allowed discount."""

    def __init__(self, product_id: str, discount_percent: Decimal, max_discount_percent: Decimal):
        super().__init__(
            f"Discount {discount_percent}% exceeds the {max_discount_percent}% limit "
            f"for product {product_id}",
            code="DISCOUNT_EXCEEDS_LIMIT",
            details={
                "product_id": product_id,
                "discount_percent": str(discount_percent),
                "max_discount_percent": str(max_discount_percent),
            },
        )


class NoItemsNoManualValueError(BusinessRuleViolation):
    """A proposal has neither line items nor a manual gross value."""

    def __init__(self, opportunity_id: int | None = None):
        super().__init__(
            "Proposal needs at least one line item or a manual gross value",
            code="NO_ITEMS_NO_MANUAL_VALUE",
            details={"opportunity_id": opportunity_id},
        )


class MissingPaymentMethodError(BusinessRuleViolation):
    """Closing a sale requires at least one payment method."""

    def __init__(self, opportunity_id: int | None = None):
        super().__init__(
            "At least one payment method is required to close a sale",
            code="MISSING_PAYMENT_METHOD",
            details={"opportunity_id": opportunity_id},
        )


class InvalidStageTransitionError(BusinessRuleViolation):
    """Stage change not permitted by the opportunity lifecycle."""

    def __init__(self, opportunity_id: int | None, from_stage: str, to_stage: str, reason: str):
        super().__init__(
            f"Cannot move opportunity from '{from_stage}' to '{to_stage}': {reason}",
            code="INVALID_STAGE_TRANSITION",
            details={
                "opportunity_id": opportunity_id,
                "from_stage": from_stage,
                "to_stage": to_stage,
                "reason": reason,
            },
        )


class OpportunityClosedError(BusinessRuleViolation):
    """Content edits on a won or lost opportunity."""

    def __init__(self, opportunity_id: int | None, stage: str):
        super().__init__(
            f"Opportunity {opportunity_id} is closed ({stage}) and cannot be edited",
            code="OPPORTUNITY_CLOSED",
            details={"opportunity_id": opportunity_id, "stage": stage},
        )


class ManualValueNotAllowedError(BusinessRuleViolation):
    """Gross value is derived from items and cannot be set by hand."""

    def __init__(self, opportunity_id: int | None, item_count: int):
        super().__init__(
            "Gross value is derived from line items and cannot be set manually",
            code="MANUAL_VALUE_NOT_ALLOWED",
            details={"opportunity_id": opportunity_id, "item_count": item_count},
        )


class ProductInactiveError(BusinessRuleViolation):
    """Inactive products cannot be quoted or sold."""

    def __init__(self, product_id: str):
        super().__init__(
            f"Product is inactive: {product_id}",
            code="PRODUCT_INACTIVE",
            details={"product_id": product_id},
        )


class InvalidPayStatusTransitionError(BusinessRuleViolation):
    """Commission pay status cannot move this way."""

    def __init__(self, commission_id: int | None, from_status: str, to_status: str):
        super().__init__(
            f"Commission {commission_id} cannot move from '{from_status}' to '{to_status}'",
            code="INVALID_PAY_STATUS_TRANSITION",
            details={
                "commission_id": commission_id,
                "from_status": from_status,
                "to_status": to_status,
            },
        )


class SaleCanceledError(BusinessRuleViolation):
    """Operation on a canceled sale."""

    def __init__(self, sale_id: int):
        super().__init__(
            f"Sale {sale_id} is canceled",
            code="SALE_CANCELED",
            details={"sale_id": sale_id},
        )


# Conversion Exceptions
class ConversionFailedError(EngineError):
    """The atomic sale write failed; the opportunity stage was not advanced."""

    def __init__(self, opportunity_id: int | None, reason: str):
        super().__init__(
            f"Conversion of opportunity {opportunity_id} failed: {reason}",
            code="CONVERSION_FAILED",
            details={"opportunity_id": opportunity_id, "reason": reason},
        )


# Commission Exceptions
class CommissionResolutionError(EngineError):
    """Base exception for soft commission failures. The sale still stands."""

    pass


class NoApplicableRuleError(CommissionResolutionError):
    """No active commission rule matches the sale."""

    def __init__(self, sale_id: int | None):
        super().__init__(
            f"No applicable commission rule for sale {sale_id}",
            code="NO_APPLICABLE_RULE",
            details={"sale_id": sale_id},
        )


class CommissionBaseUnavailableError(CommissionResolutionError):
    """The selected rule's base cannot be computed for this sale."""

    def __init__(self, sale_id: int | None, base: str, reason: str):
        super().__init__(
            f"Commission base '{base}' unavailable for sale {sale_id}: {reason}",
            code="COMMISSION_BASE_UNAVAILABLE",
            details={"sale_id": sale_id, "base": base, "reason": reason},
        )


# Storage Exceptions
class StorageError(EngineError):
    """Base exception for storage operations."""

    pass


class OpportunityNotFoundError(StorageError):
    """Opportunity not found in storage."""

    def __init__(self, opportunity_id: int):
        super().__init__(
            f"Opportunity not found: {opportunity_id}",
            code="OPPORTUNITY_NOT_FOUND",
            details={"opportunity_id": opportunity_id},
        )


class LineItemNotFoundError(StorageError):
    """Line item not found on the opportunity."""

    def __init__(self, opportunity_id: int | None, item_id: str):
        super().__init__(
            f"Line item {item_id} not found on opportunity {opportunity_id}",
            code="LINE_ITEM_NOT_FOUND",
            details={"opportunity_id": opportunity_id, "item_id": item_id},
        )


class SaleNotFoundError(StorageError):
    """Sale not found in storage."""

    def __init__(self, sale_id: int):
        super().__init__(
            f"Sale not found: {sale_id}",
            code="SALE_NOT_FOUND",
            details={"sale_id": sale_id},
        )


class CommissionNotFoundError(StorageError):
    """Commission not found in storage."""

    def __init__(self, commission_id: int | None = None, sale_id: int | None = None):
        target = f"sale {sale_id}" if commission_id is None else str(commission_id)
        super().__init__(
            f"Commission not found: {target}",
            code="COMMISSION_NOT_FOUND",
            details={"commission_id": commission_id, "sale_id": sale_id},
        )


class CommissionRuleNotFoundError(StorageError):
    """Commission rule not found in storage."""

    def __init__(self, rule_id: int):
        super().__init__(
            f"Commission rule not found: {rule_id}",
            code="COMMISSION_RULE_NOT_FOUND",
            details={"rule_id": rule_id},
        )


class DuplicateCommissionError(StorageError):
    """An active commission already exists for the sale."""

    def __init__(self, sale_id: int):
        super().__init__(
            f"Active commission already exists for sale {sale_id}",
            code="DUPLICATE_COMMISSION",
            details={"sale_id": sale_id},
        )


class ProductNotFoundError(StorageError):
    """Product not found in the catalog."""

    def __init__(self, product_id: str):
        super().__init__(
            f"Product not found: {product_id}",
            code="PRODUCT_NOT_FOUND",
            details={"product_id": product_id},
        )


class ServiceRecordNotFoundError(StorageError):
    """Service record not found in the catalog."""

    def __init__(self, service_id: str):
        super().__init__(
            f"Service record not found: {service_id}",
            code="SERVICE_RECORD_NOT_FOUND",
            details={"service_id": service_id},
        )


class DatabaseError(StorageError):
    """Database operation failed."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            code="DATABASE_ERROR",
            details={"operation": operation, "error": error},
        )


class ConfigurationError(EngineError):
    """Configuration error."""

    pass
