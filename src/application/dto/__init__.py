"""Data Transfer Objects for API layer.

Request DTOs: Validate and parse incoming API requests.
Response DTOs: Structure and serialize API responses.

These are the ONLY contracts between API handlers and use cases.
"""

from src.application.dto.requests import (
    ChangePayStatusRequest,
    ChangeStageRequest,
    CommissionRuleRequest,
    CreateOpportunityRequest,
    CreateSaleRequest,
    LineItemRequest,
    PaymentReceivedRequest,
    ProductRequest,
    ServiceRecordRequest,
    UpdateCommissionRuleRequest,
    UpdateLineItemRequest,
    UpdateOpportunityRequest,
    UpdateSaleRequest,
)
from src.application.dto.responses import (
    CommissionListResponse,
    CommissionResponse,
    CommissionRuleResponse,
    CreateSaleResponse,
    ErrorResponse,
    HealthResponse,
    OpportunityListResponse,
    OpportunityResponse,
    ProductResponse,
    ProposalLineItemResponse,
    SaleLineItemResponse,
    SaleListResponse,
    SaleResponse,
    ServiceRecordResponse,
    StageChangeResponse,
)

__all__ = [
    # Requests
    "CreateOpportunityRequest",
    "UpdateOpportunityRequest",
    "LineItemRequest",
    "UpdateLineItemRequest",
    "ChangeStageRequest",
    "CreateSaleRequest",
    "UpdateSaleRequest",
    "PaymentReceivedRequest",
    "ChangePayStatusRequest",
    "ProductRequest",
    "ServiceRecordRequest",
    "CommissionRuleRequest",
    "UpdateCommissionRuleRequest",
    # Responses
    "ProposalLineItemResponse",
    "OpportunityResponse",
    "OpportunityListResponse",
    "SaleLineItemResponse",
    "SaleResponse",
    "SaleListResponse",
    "CommissionResponse",
    "CommissionListResponse",
    "StageChangeResponse",
    "CreateSaleResponse",
    "ProductResponse",
    "ServiceRecordResponse",
    "CommissionRuleResponse",
    "HealthResponse",
    "ErrorResponse",
]
