from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _money(name: str, nullable: bool = True, **kwargs) -> sa.Column:
    if not nullable:
        kwargs.setdefault("server_default", "0")
    return sa.Column(name, sa.Numeric(14, 2), nullable=nullable, **kwargs)


def upgrade() -> None:
    op.create_table(
        "shipments",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("supplier", sa.String(length=255), nullable=False),
        sa.Column("order_ref", sa.String(length=100), unique=True),
        sa.Column("product_name", sa.String(length=255)),
        _money("quantity"),
        sa.Column("week_number", sa.Integer()),
        sa.Column("final_pod", sa.String(length=100)),
        sa.Column("receiving_warehouse", sa.String(length=100)),
        sa.Column("forwarding_agent", sa.String(length=255)),
        sa.Column("vessel_name", sa.String(length=255)),
        sa.Column("incoterm", sa.String(length=8)),
        sa.Column("notes", sa.Text()),
        sa.Column("latest_status", sa.String(length=32), nullable=False, server_default="planned_airfreight"),
        sa.Column("unloading_start_date", sa.DateTime(timezone=True)),
        sa.Column("unloading_completed_date", sa.DateTime(timezone=True)),
        sa.Column("inspection_date", sa.DateTime(timezone=True)),
        sa.Column("inspection_status", sa.String(length=32)),
        sa.Column("inspection_notes", sa.Text()),
        sa.Column("inspected_by", sa.String(length=255)),
        sa.Column("receiving_date", sa.DateTime(timezone=True)),
        sa.Column("receiving_status", sa.String(length=32)),
        sa.Column("receiving_notes", sa.Text()),
        sa.Column("received_by", sa.String(length=255)),
        _money("received_quantity"),
        sa.Column("discrepancies", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("rejection_date", sa.DateTime(timezone=True)),
        sa.Column("rejection_reason", sa.Text()),
        sa.Column("rejected_by", sa.String(length=255)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_shipments_latest_status", "shipments", ["latest_status"])
    op.create_index("ix_shipments_supplier", "shipments", ["supplier"])

    op.create_table(
        "import_cost_estimates",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("shipment_id", sa.String(length=64), sa.ForeignKey("shipments.id", ondelete="SET NULL")),
        sa.Column("supplier_id", sa.String(length=64)),
        sa.Column("supplier_name", sa.String(length=255)),
        sa.Column("reference_number", sa.String(length=100)),
        sa.Column("country_of_destination", sa.String(length=100), nullable=False, server_default="South Africa"),
        sa.Column("port_of_discharge", sa.String(length=50)),
        sa.Column("shipping_line", sa.String(length=100)),
        sa.Column("container_type", sa.String(length=50)),
        sa.Column("inco_terms", sa.String(length=20)),
        sa.Column("commodity", sa.String(length=255)),
        sa.Column("hs_code", sa.String(length=50)),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("costing_date", sa.Date(), nullable=False, server_default=sa.func.current_date()),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="draft"),
        sa.Column("schedule", sa.String(length=32), nullable=False, server_default="standard"),
        sa.Column("notes", sa.Text()),
        sa.Column("created_by", sa.String(length=255)),
        sa.Column("roe_origin", sa.Numeric(12, 6)),
        sa.Column("roe_eur", sa.Numeric(12, 6)),
        _money("invoice_value_usd"),
        _money("invoice_value_eur"),
        sa.Column("origin_charge_usd", sa.Numeric(12, 2)),
        sa.Column("origin_charge_eur", sa.Numeric(12, 2)),
        sa.Column("total_gross_weight_kg", sa.Numeric(12, 2)),
        sa.Column("customs_duty_not_applicable", sa.Boolean(), nullable=False, server_default=sa.false()),
        _money("duties_zar"),
        _money("customs_vat_zar"),
        _money("customs_declaration_zar"),
        sa.Column("line_items", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        _money("customs_value_zar", nullable=False),
        _money("origin_charge_usd_zar", nullable=False),
        _money("origin_charge_eur_zar", nullable=False),
        _money("origin_charge_zar", nullable=False),
        _money("total_origin_charges_zar", nullable=False),
        _money("local_charges_subtotal_zar", nullable=False),
        _money("destination_charges_subtotal_zar", nullable=False),
        _money("agency_fee_zar", nullable=False),
        _money("customs_subtotal_zar", nullable=False),
        _money("total_shipping_cost_zar", nullable=False),
        _money("total_in_warehouse_cost_zar", nullable=False),
        _money("cost_per_kg_zar", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_import_cost_estimates_shipment_id", "import_cost_estimates", ["shipment_id"])
    op.create_index("ix_import_cost_estimates_supplier_id", "import_cost_estimates", ["supplier_id"])
    op.create_index("ix_import_cost_estimates_status", "import_cost_estimates", ["status"])

    op.create_table(
        "archives",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("file_name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("archived_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("total_shipments", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("data", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
    )
    op.create_index("ix_archives_archived_at", "archives", ["archived_at"])

    op.create_table(
        "exchange_rate_cache",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("currency_pair", sa.String(length=10), nullable=False, unique=True),
        sa.Column("rate", sa.Numeric(12, 6), nullable=False),
        sa.Column("source", sa.String(length=100)),
        sa.Column("fetched_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("exchange_rate_cache")
    op.drop_index("ix_archives_archived_at", table_name="archives")
    op.drop_table("archives")
    op.drop_index("ix_import_cost_estimates_status", table_name="import_cost_estimates")
    op.drop_index("ix_import_cost_estimates_supplier_id", table_name="import_cost_estimates")
    op.drop_index("ix_import_cost_estimates_shipment_id", table_name="import_cost_estimates")
    op.drop_table("import_cost_estimates")
    op.drop_index("ix_shipments_supplier", table_name="shipments")
    op.drop_index("ix_shipments_latest_status", table_name="shipments")
    op.drop_table("shipments")
