"""API routes for metric data sources (HubSpot and BigQuery)."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from ..core import AdminDep, OrgContextDep, SessionDep
from ..schemas import DataSourceCreate, DataSourceResponse, DataSourceUpdate
from ..services.common import CadenceError
from ..services.integrations import DataSourceService
from .errors import http_error

router = APIRouter(prefix="/data-sources", tags=["data-sources"])


def get_data_source_service(session: SessionDep) -> DataSourceService:
    return DataSourceService(session)


DataSourceServiceDep = Annotated[DataSourceService, Depends(get_data_source_service)]


def with_usage(source, metrics_count: int) -> DataSourceResponse:
    return DataSourceResponse.model_validate(source).model_copy(
        update={"metrics_count": metrics_count}
    )


@router.get("", response_model=list[DataSourceResponse])
async def list_data_sources(current_user: OrgContextDep, service: DataSourceServiceDep):
    sources = await service.list_data_sources(current_user.organization_id)
    return [with_usage(s.data_source, s.metrics_count) for s in sources]


@router.post("", response_model=DataSourceResponse, status_code=status.HTTP_201_CREATED)
async def create_data_source(
    data: DataSourceCreate,
    current_user: AdminDep,
    service: DataSourceServiceDep,
):
    try:
        source = await service.create_data_source(
            current_user.organization_id, current_user.id, data.model_dump(exclude_unset=True)
        )
    except CadenceError as e:
        raise http_error(e) from e
    return with_usage(source, 0)


@router.get("/{data_source_id}", response_model=DataSourceResponse)
async def get_data_source(
    data_source_id: UUID,
    current_user: OrgContextDep,
    service: DataSourceServiceDep,
):
    try:
        source = await service.get_data_source(current_user.organization_id, data_source_id)
    except CadenceError as e:
        raise http_error(e) from e
    metrics = await service.list_metrics_using(source.id)
    return with_usage(source, len(metrics))


@router.patch("/{data_source_id}", response_model=DataSourceResponse)
async def update_data_source(
    data_source_id: UUID,
    data: DataSourceUpdate,
    current_user: AdminDep,
    service: DataSourceServiceDep,
):
    """The source type is fixed at creation; only its settings change."""
    try:
        source = await service.update_data_source(
            current_user.organization_id, data_source_id, data.model_dump(exclude_unset=True)
        )
    except CadenceError as e:
        raise http_error(e) from e
    metrics = await service.list_metrics_using(source.id)
    return with_usage(source, len(metrics))


@router.delete("/{data_source_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_data_source(
    data_source_id: UUID,
    current_user: AdminDep,
    service: DataSourceServiceDep,
):
    try:
        await service.delete_data_source(current_user.organization_id, data_source_id)
    except CadenceError as e:
        raise http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
