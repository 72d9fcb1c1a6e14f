from types import SimpleNamespace

import pytest
from sqlalchemy.dialects import postgresql

from app.models.enums import ShipmentStatus
from app.repositories.shipment_repo import ShipmentRepository, transition_statement
from tests.support import FakeSession


class RecordingSession(FakeSession):
    def __init__(self, row=None) -> None:
        super().__init__()
        self.row = row
        self.statements = []

    async def execute(self, stmt):
        self.statements.append(stmt)
        return SimpleNamespace(scalar_one_or_none=lambda: self.row)


def compile_pg(stmt):
    return stmt.compile(dialect=postgresql.dialect())


def test_transition_statement_guards_on_current_status():
    stmt = transition_statement(
        "ship_1",
        [ShipmentStatus.ARRIVED_KLM, ShipmentStatus.ARRIVED_PTA],
        {"latest_status": ShipmentStatus.UNLOADING},
    )
    compiled = compile_pg(stmt)
    sql = " ".join(str(compiled).split())

    assert sql.startswith("UPDATE shipments SET")
    assert "WHERE shipments.id = " in sql
    assert "AND shipments.latest_status IN (" in sql
    assert "updated_at=now()" in sql
    assert "RETURNING shipments." in sql

    params = compiled.params
    assert "ship_1" in params.values()
    guards = [list(value) for value in params.values() if isinstance(value, (list, tuple))]
    assert guards == [[ShipmentStatus.ARRIVED_KLM, ShipmentStatus.ARRIVED_PTA]]
    assert params["latest_status"] == ShipmentStatus.UNLOADING


def test_transition_statement_sets_every_value():
    stmt = transition_statement(
        "ship_1",
        {ShipmentStatus.INSPECTING},
        {"latest_status": ShipmentStatus.INSPECTION_FAILED, "inspection_notes": "Damaged"},
    )
    sql = str(compile_pg(stmt))
    assert "inspection_notes=" in sql
    assert "latest_status=" in sql


@pytest.mark.asyncio
async def test_transition_returns_none_when_guard_misses():
    session = RecordingSession(row=None)
    repo = ShipmentRepository(session)

    result = await repo.transition("ship_1", [ShipmentStatus.RECEIVED], {"latest_status": ShipmentStatus.STORED})

    assert result is None
    assert len(session.statements) == 1
    assert session.commits == 1


@pytest.mark.asyncio
async def test_transition_inside_outer_transaction_only_flushes():
    row = SimpleNamespace(id="ship_1", latest_status=ShipmentStatus.REJECTED)
    session = RecordingSession(row=row)
    repo = ShipmentRepository(session)

    result = await repo.transition(
        "ship_1",
        [ShipmentStatus.INSPECTION_FAILED],
        {"latest_status": ShipmentStatus.REJECTED},
        commit=False,
    )

    assert result is row
    assert session.commits == 0
    assert session.flushes == 1
