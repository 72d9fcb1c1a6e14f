from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.cost_estimate import ImportCostEstimate
from app.models.enums import CostEstimateStatus


class CostEstimateRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _filtered(self, stmt, status=None, supplier_id=None, shipment_id=None):
        if status is not None:
            stmt = stmt.where(ImportCostEstimate.status == status)
        if supplier_id:
            stmt = stmt.where(ImportCostEstimate.supplier_id == supplier_id)
        if shipment_id:
            stmt = stmt.where(ImportCostEstimate.shipment_id == shipment_id)
        return stmt

    async def list(
        self,
        status: CostEstimateStatus | None = None,
        supplier_id: str | None = None,
        shipment_id: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[ImportCostEstimate], int]:
        filters = dict(status=status, supplier_id=supplier_id, shipment_id=shipment_id)
        total = await self.session.scalar(self._filtered(select(func.count(ImportCostEstimate.id)), **filters))
        result = await self.session.execute(
            self._filtered(select(ImportCostEstimate), **filters)
            .order_by(ImportCostEstimate.created_at.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        return list(result.scalars().all()), int(total or 0)

    async def get(self, estimate_id: str) -> ImportCostEstimate | None:
        result = await self.session.execute(select(ImportCostEstimate).where(ImportCostEstimate.id == estimate_id))
        return result.scalar_one_or_none()

    async def list_by_shipment(self, shipment_id: str) -> list[ImportCostEstimate]:
        result = await self.session.execute(
            select(ImportCostEstimate)
            .where(ImportCostEstimate.shipment_id == shipment_id)
            .order_by(ImportCostEstimate.created_at.desc())
        )
        return list(result.scalars().all())

    async def create(self, estimate: ImportCostEstimate) -> ImportCostEstimate:
        self.session.add(estimate)
        await self.session.commit()
        await self.session.refresh(estimate)
        return estimate

    async def update(self, estimate: ImportCostEstimate) -> ImportCostEstimate:
        self.session.add(estimate)
        await self.session.commit()
        await self.session.refresh(estimate)
        return estimate

    async def delete(self, estimate: ImportCostEstimate) -> None:
        await self.session.delete(estimate)
        await self.session.commit()
