from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from app.core.deps import get_db_session
from app.models.enums import CostEstimateStatus
from app.schemas.common import Pagination
from app.schemas.costing import (
    CalculateRequest,
    CostEstimateCreate,
    CostEstimateList,
    CostEstimateRead,
    CostEstimateUpdate,
    CostTotals,
    LinkShipmentRequest,
)
from app.schemas.rates import ExchangeRateResponse, ManualRateRequest
from app.services.costing import CostingService, calculate_all_totals
from app.services.exchange_rates import ExchangeRateService

router = APIRouter(prefix="/costing", tags=["costing"])


@router.get("", response_model=CostEstimateList)
async def list_estimates(
    status_filter: CostEstimateStatus | None = Query(default=None, alias="status"),
    supplier_id: str | None = None,
    shipment_id: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=200),
    session=Depends(get_db_session),
):
    estimates, total = await CostingService(session).list(
        status=status_filter, supplier_id=supplier_id, shipment_id=shipment_id, page=page, limit=limit
    )
    return CostEstimateList(estimates=estimates, pagination=Pagination.build(page, limit, total))


@router.post("", response_model=CostEstimateRead, status_code=status.HTTP_201_CREATED)
async def create_estimate(payload: CostEstimateCreate, session=Depends(get_db_session)):
    return await CostingService(session).create(payload.model_dump(exclude_none=True))


@router.post("/calculate", response_model=CostTotals)
async def calculate(payload: CalculateRequest):
    return calculate_all_totals(payload.model_dump(exclude_none=True))


@router.get("/exchange-rate/current", response_model=ExchangeRateResponse)
async def current_exchange_rate(session=Depends(get_db_session)):
    return await ExchangeRateService(session).get_current_rate()


@router.post("/exchange-rate/refresh", response_model=ExchangeRateResponse)
async def refresh_exchange_rate(session=Depends(get_db_session)):
    return await ExchangeRateService(session).refresh_rate()


@router.post("/exchange-rate/manual", response_model=ExchangeRateResponse)
async def manual_exchange_rate(payload: ManualRateRequest, session=Depends(get_db_session)):
    return await ExchangeRateService(session).set_manual_rate(payload.rate)


@router.get("/by-shipment/{shipment_id}", response_model=list[CostEstimateRead])
async def estimates_for_shipment(shipment_id: str, session=Depends(get_db_session)):
    return await CostingService(session).list_by_shipment(shipment_id)


@router.get("/{estimate_id}", response_model=CostEstimateRead)
async def get_estimate(estimate_id: str, session=Depends(get_db_session)):
    return await CostingService(session).get(estimate_id)


@router.put("/{estimate_id}", response_model=CostEstimateRead)
async def update_estimate(estimate_id: str, payload: CostEstimateUpdate, session=Depends(get_db_session)):
    return await CostingService(session).update(estimate_id, payload.model_dump(exclude_unset=True))


@router.delete("/{estimate_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_estimate(estimate_id: str, session=Depends(get_db_session)):
    await CostingService(session).delete(estimate_id)


@router.post("/{estimate_id}/duplicate", response_model=CostEstimateRead, status_code=status.HTTP_201_CREATED)
async def duplicate_estimate(estimate_id: str, session=Depends(get_db_session)):
    return await CostingService(session).duplicate(estimate_id)


@router.post("/{estimate_id}/link-shipment", response_model=CostEstimateRead)
async def link_shipment(estimate_id: str, payload: LinkShipmentRequest, session=Depends(get_db_session)):
    return await CostingService(session).link_to_shipment(estimate_id, payload.shipment_id)


@router.delete("/{estimate_id}/link-shipment", response_model=CostEstimateRead)
async def unlink_shipment(estimate_id: str, session=Depends(get_db_session)):
    return await CostingService(session).unlink_from_shipment(estimate_id)
