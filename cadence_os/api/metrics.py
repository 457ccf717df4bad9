"""API routes for scorecard metrics and their values."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from ..core import AdminDep, OrgContextDep, SessionDep
from ..schemas import (
    MetricCreate,
    MetricListItem,
    MetricResponse,
    MetricUpdate,
    MetricValueCreate,
    MetricValueResponse,
)
from ..services.common import CadenceError
from ..services.scorecard import DEFAULT_VALUES_LIMIT, MetricWithValue, ScorecardService
from .errors import http_error

router = APIRouter(prefix="/metrics", tags=["metrics"])


def get_scorecard_service(session: SessionDep) -> ScorecardService:
    return ScorecardService(session)


ScorecardServiceDep = Annotated[ScorecardService, Depends(get_scorecard_service)]


def metric_to_list_item(item: MetricWithValue) -> MetricListItem:
    return MetricListItem(
        **MetricResponse.model_validate(item.metric).model_dump(),
        current_value=item.current_value,
        recorded_at=item.recorded_at,
        status=item.status,
        trend=item.trend,
    )


@router.get("", response_model=list[MetricListItem])
async def list_metrics(current_user: OrgContextDep, service: ScorecardServiceDep):
    """Scorecard in display order with latest value, status and trend."""
    metrics = await service.list_metrics(current_user.organization_id)
    return [metric_to_list_item(m) for m in metrics]


@router.post("", response_model=MetricResponse, status_code=status.HTTP_201_CREATED)
async def create_metric(data: MetricCreate, current_user: AdminDep, service: ScorecardServiceDep):
    try:
        return await service.create_metric(
            current_user.organization_id, data.model_dump(exclude_unset=True)
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.get("/{metric_id}", response_model=MetricResponse)
async def get_metric(metric_id: UUID, current_user: OrgContextDep, service: ScorecardServiceDep):
    try:
        return await service.get_metric(current_user.organization_id, metric_id)
    except CadenceError as e:
        raise http_error(e) from e


@router.patch("/{metric_id}", response_model=MetricResponse)
async def update_metric(
    metric_id: UUID,
    data: MetricUpdate,
    current_user: AdminDep,
    service: ScorecardServiceDep,
):
    try:
        return await service.update_metric(
            current_user.organization_id, metric_id, data.model_dump(exclude_unset=True)
        )
    except CadenceError as e:
        raise http_error(e) from e


@router.delete("/{metric_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_metric(metric_id: UUID, current_user: AdminDep, service: ScorecardServiceDep):
    try:
        await service.delete_metric(current_user.organization_id, metric_id)
    except CadenceError as e:
        raise http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{metric_id}/values", response_model=list[MetricValueResponse])
async def list_values(
    metric_id: UUID,
    current_user: OrgContextDep,
    service: ScorecardServiceDep,
    limit: Annotated[int, Query(ge=1, le=500)] = DEFAULT_VALUES_LIMIT,
):
    try:
        return await service.list_values(current_user.organization_id, metric_id, limit=limit)
    except CadenceError as e:
        raise http_error(e) from e


@router.post(
    "/{metric_id}/values",
    response_model=MetricValueResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_value(
    metric_id: UUID,
    data: MetricValueCreate,
    current_user: OrgContextDep,
    service: ScorecardServiceDep,
):
    """Admins and the metric's owner only."""
    try:
        return await service.record_value(
            current_user.organization_id,
            metric_id,
            current_user.id,
            current_user.is_admin,
            data.value,
            notes=data.notes,
            recorded_at=data.recorded_at,
        )
    except CadenceError as e:
        raise http_error(e) from e
