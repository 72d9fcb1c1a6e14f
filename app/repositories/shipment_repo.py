from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import ARRIVED_STATUSES, IN_TRANSIT_STATUSES, ShipmentStatus
from app.models.shipment import Shipment


def transition_statement(shipment_id: str, from_statuses: Iterable[ShipmentStatus], values: dict[str, Any]):
    return (
        update(Shipment)
        .where(Shipment.id == shipment_id, Shipment.latest_status.in_(list(from_statuses)))
        .values(**values, updated_at=func.now())
        .returning(Shipment)
        .execution_options(populate_existing=True, synchronize_session=False)
    )


class ShipmentRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _finish(self, commit: bool) -> None:
        if commit:
            await self.session.commit()
        else:
            await self.session.flush()

    async def create(self, shipment: Shipment, commit: bool = True) -> Shipment:
        self.session.add(shipment)
        await self._finish(commit)
        await self.session.refresh(shipment)
        return shipment

    async def get(self, shipment_id: str) -> Shipment | None:
        result = await self.session.execute(select(Shipment).where(Shipment.id == shipment_id))
        return result.scalar_one_or_none()

    async def get_by_order_ref(self, order_ref: str) -> Shipment | None:
        result = await self.session.execute(select(Shipment).where(Shipment.order_ref == order_ref))
        return result.scalar_one_or_none()

    def _filtered(self, stmt, status=None, supplier=None, week_number=None, search=None):
        if status is not None:
            stmt = stmt.where(Shipment.latest_status == status)
        if supplier:
            stmt = stmt.where(Shipment.supplier == supplier)
        if week_number is not None:
            stmt = stmt.where(Shipment.week_number == week_number)
        if search:
            term = f"%{search}%"
            stmt = stmt.where(
                or_(
                    Shipment.order_ref.ilike(term),
                    Shipment.supplier.ilike(term),
                    Shipment.product_name.ilike(term),
                    Shipment.notes.ilike(term),
                )
            )
        return stmt

    async def list(
        self,
        status: ShipmentStatus | None = None,
        supplier: str | None = None,
        week_number: int | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Shipment], int]:
        filters = dict(status=status, supplier=supplier, week_number=week_number, search=search)
        total = await self.session.scalar(self._filtered(select(func.count(Shipment.id)), **filters))
        stmt = (
            self._filtered(select(Shipment), **filters)
            .order_by(Shipment.created_at.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), int(total or 0)

    async def list_all(self) -> list[Shipment]:
        result = await self.session.execute(select(Shipment).order_by(Shipment.created_at))
        return list(result.scalars().all())

    async def list_by_ids(self, shipment_ids: Iterable[str], statuses: Iterable[ShipmentStatus]) -> list[Shipment]:
        result = await self.session.execute(
            select(Shipment).where(Shipment.id.in_(list(shipment_ids)), Shipment.latest_status.in_(list(statuses)))
        )
        return list(result.scalars().all())

    async def list_by_statuses(self, statuses: Iterable[ShipmentStatus]) -> list[Shipment]:
        result = await self.session.execute(
            select(Shipment).where(Shipment.latest_status.in_(list(statuses))).order_by(Shipment.updated_at.desc())
        )
        return list(result.scalars().all())

    async def update(self, shipment: Shipment) -> Shipment:
        self.session.add(shipment)
        await self.session.commit()
        await self.session.refresh(shipment)
        return shipment

    async def transition(
        self,
        shipment_id: str,
        from_statuses: Iterable[ShipmentStatus],
        values: dict[str, Any],
        commit: bool = True,
    ) -> Shipment | None:
        """Apply ``values`` only if the row is still in one of ``from_statuses``.

        Returns the updated row, or ``None`` when no row matched.
        """
        result = await self.session.execute(transition_statement(shipment_id, from_statuses, values))
        shipment = result.scalar_one_or_none()
        await self._finish(commit)
        return shipment

    async def delete(self, shipment: Shipment, commit: bool = True) -> None:
        await self.session.delete(shipment)
        await self._finish(commit)

    async def delete_ids(self, shipment_ids: Iterable[str], commit: bool = True) -> None:
        await self.session.execute(delete(Shipment).where(Shipment.id.in_(list(shipment_ids))))
        await self._finish(commit)

    async def delete_all(self, commit: bool = True) -> None:
        await self.session.execute(delete(Shipment))
        await self._finish(commit)

    async def add_all(self, shipments: list[Shipment], commit: bool = True) -> None:
        self.session.add_all(shipments)
        await self._finish(commit)

    async def count(self) -> int:
        return int(await self.session.scalar(select(func.count(Shipment.id))) or 0)

    async def statistics(self) -> dict[str, int]:
        def _count_in(statuses):
            return func.count(case((Shipment.latest_status.in_(list(statuses)), 1)))

        row = (
            await self.session.execute(
                select(
                    func.count(Shipment.id).label("total"),
                    _count_in([ShipmentStatus.STORED]).label("stored"),
                    _count_in(IN_TRANSIT_STATUSES).label("in_transit"),
                    _count_in(ARRIVED_STATUSES).label("arrived"),
                )
            )
        ).one()
        return {
            "total": int(row.total or 0),
            "stored": int(row.stored or 0),
            "in_transit": int(row.in_transit or 0),
            "arrived": int(row.arrived or 0),
        }
