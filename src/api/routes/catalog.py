"""
Product and service catalog endpoints.
"""

from fastapi import APIRouter, Depends, Query

from src.api.dependencies import (
    Actor,
    get_actor,
    get_manage_catalog_use_case,
    require_admin,
)
from src.application.dto.requests import ProductRequest, ServiceRecordRequest
from src.application.dto.responses import (
    ErrorResponse,
    ProductResponse,
    ServiceRecordResponse,
)
from src.application.use_cases import ManageCatalogUseCase

router = APIRouter(prefix="/api/catalog", tags=["catalog"])


@router.put(
    "/products",
    response_model=ProductResponse,
    responses={403: {"model": ErrorResponse}},
)
async def save_product(
    request: ProductRequest,
    actor: Actor = Depends(require_admin),
    use_case: ManageCatalogUseCase = Depends(get_manage_catalog_use_case),
) -> ProductResponse:
    """Create or replace a product. Existing sales keep their frozen prices."""
    return ProductResponse.model_validate(await use_case.save_product(request))


@router.get("/products", response_model=list[ProductResponse])
async def list_products(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    category: str | None = None,
    active_only: bool = False,
    actor: Actor = Depends(get_actor),
    use_case: ManageCatalogUseCase = Depends(get_manage_catalog_use_case),
) -> list[ProductResponse]:
    products = await use_case.list_products(
        limit=limit, offset=offset, category=category, active_only=active_only
    )
    return [ProductResponse.model_validate(p) for p in products]


@router.get(
    "/products/{product_id}",
    response_model=ProductResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_product(
    product_id: str,
    actor: Actor = Depends(get_actor),
    use_case: ManageCatalogUseCase = Depends(get_manage_catalog_use_case),
) -> ProductResponse:
    return ProductResponse.model_validate(await use_case.get_product(product_id))


@router.put(
    "/services",
    response_model=ServiceRecordResponse,
    responses={403: {"model": ErrorResponse}},
)
async def save_service_record(
    request: ServiceRecordRequest,
    actor: Actor = Depends(get_actor),
    use_case: ManageCatalogUseCase = Depends(get_manage_catalog_use_case),
) -> ServiceRecordResponse:
    """Register a field service. Technicians record the services they perform."""
    return ServiceRecordResponse.model_validate(await use_case.save_service_record(request))


@router.get(
    "/services/{service_id}",
    response_model=ServiceRecordResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_service_record(
    service_id: str,
    actor: Actor = Depends(get_actor),
    use_case: ManageCatalogUseCase = Depends(get_manage_catalog_use_case),
) -> ServiceRecordResponse:
    return ServiceRecordResponse.model_validate(await use_case.get_service_record(service_id))
