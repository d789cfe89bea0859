# backend/helperhive/routes/v1/services.py
"""
Service catalog routes - API v1

Endpoints:
    GET / - Active services, filtered by category, province and search text
    GET /categories - Categories with active service counts
    GET /providers/nearby - Bookable providers within a radius, nearest first
    GET /{service_id} - Service details with its bookable providers
    POST / - Create a service (admin)
    PUT /{service_id} - Update a service (admin)
    DELETE /{service_id} - Deactivate a service (admin)
"""

import asyncio
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import require_admin
from ...api.dependencies.services import get_catalog_service
from ...core.constants import DEFAULT_SERVING_RADIUS_KM
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.base import PaginatedResponse
from ...schemas.service import (
    CategorySummary,
    ProviderSummary,
    ServiceCreate,
    ServiceDetailResponse,
    ServiceResponse,
    ServiceUpdate,
)
from ...services.catalog_service import CatalogService
from .common import ServiceId, handle_domain_exception

router = APIRouter(tags=["services-v1"])


def _provider_summary(provider: User, distance_km: Optional[float] = None) -> ProviderSummary:
    profile = provider.provider_profile
    return ProviderSummary(
        id=provider.id,
        first_name=provider.first_name,
        last_name=provider.last_name,
        bio=profile.bio,
        hourly_rate=profile.hourly_rate,
        years_experience=profile.years_experience,
        rating_average=profile.rating_average,
        rating_count=profile.rating_count,
        completed_jobs=profile.completed_jobs,
        distance_km=distance_km,
    )


@router.get("", response_model=PaginatedResponse[ServiceResponse])
async def list_services(
    category: Optional[str] = Query(None),
    province: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> PaginatedResponse[ServiceResponse]:
    services, total = await asyncio.to_thread(
        lambda: catalog_service.list_services(
            category=category, province=province, search=search, page=page, limit=limit
        )
    )
    return PaginatedResponse[ServiceResponse].build(
        [ServiceResponse.model_validate(s) for s in services], total, page, limit
    )


@router.get("/categories", response_model=List[CategorySummary])
async def list_categories(
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> List[CategorySummary]:
    rows = await asyncio.to_thread(catalog_service.list_categories)
    return [CategorySummary(**row) for row in rows]


@router.get("/providers/nearby", response_model=List[ProviderSummary])
async def nearby_providers(
    service_id: str = Query(...),
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(DEFAULT_SERVING_RADIUS_KM, gt=0, le=500),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> List[ProviderSummary]:
    try:
        matches = await asyncio.to_thread(
            catalog_service.nearby_providers, service_id, latitude, longitude, radius_km
        )
    except DomainException as e:
        handle_domain_exception(e)
    return [_provider_summary(provider, distance) for provider, distance in matches]


@router.get("/{service_id}", response_model=ServiceDetailResponse)
async def get_service(
    service_id: ServiceId,
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> ServiceDetailResponse:
    try:
        service, providers = await asyncio.to_thread(catalog_service.get_service, service_id)
    except DomainException as e:
        handle_domain_exception(e)
    response = ServiceDetailResponse.model_validate(service)
    response.providers = [_provider_summary(p) for p in providers]
    return response


@router.post("", response_model=ServiceResponse, status_code=201)
async def create_service(
    payload: ServiceCreate,
    current_user: User = Depends(require_admin),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> ServiceResponse:
    try:
        service = await asyncio.to_thread(catalog_service.create_service, payload, current_user)
    except DomainException as e:
        handle_domain_exception(e)
    return ServiceResponse.model_validate(service)


@router.put("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: ServiceId,
    payload: ServiceUpdate,
    current_user: User = Depends(require_admin),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> ServiceResponse:
    try:
        service = await asyncio.to_thread(
            catalog_service.update_service, service_id, payload, current_user
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ServiceResponse.model_validate(service)


@router.delete("/{service_id}", response_model=ServiceResponse)
async def deactivate_service(
    service_id: ServiceId,
    current_user: User = Depends(require_admin),
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> ServiceResponse:
    """Soft delete: existing bookings keep their snapshot of the service."""
    try:
        service = await asyncio.to_thread(
            catalog_service.deactivate_service, service_id, current_user
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ServiceResponse.model_validate(service)
