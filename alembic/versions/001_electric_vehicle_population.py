"""Initial migration: PostGIS extension and electric_vehicle_population table.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""

from collections.abc import Sequence

import geoalchemy2
import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis")

    op.create_table(
        "electric_vehicle_population",
        sa.Column("vin", sa.String(10), nullable=False),
        sa.Column("county", sa.String(255), nullable=True),
        sa.Column("city", sa.String(255), nullable=True),
        sa.Column("state", sa.String(50), nullable=True),
        sa.Column("postal_code", sa.String(20), nullable=True),
        sa.Column("model_year", sa.Integer(), nullable=True),
        sa.Column("make", sa.String(255), nullable=True),
        sa.Column("model", sa.String(255), nullable=True),
        sa.Column("electric_vehicle_type", sa.String(100), nullable=True),
        sa.Column("cafv_eligibility_status", sa.String(255), nullable=True),
        sa.Column("electric_range", sa.Integer(), nullable=True),
        sa.Column("base_msrp", sa.Numeric(12, 2), nullable=True),
        sa.Column("legislative_district", sa.String(50), nullable=True),
        sa.Column("dol_vehicle_id", sa.BigInteger(), nullable=False),
        sa.Column("electric_utility", sa.String(255), nullable=True),
        sa.Column("census_tract_2020", sa.BigInteger(), nullable=True),
        sa.Column(
            "vehicle_location_point",
            geoalchemy2.types.Geometry(
                geometry_type="POINT",
                srid=4326,
                from_text="ST_GeomFromEWKT",
                spatial_index=False,
            ),
            nullable=True,
        ),
        sa.PrimaryKeyConstraint("vin"),
        sa.UniqueConstraint("dol_vehicle_id", name="uq_electric_vehicle_population_dol_vehicle_id"),
    )
    op.create_index("ix_electric_vehicle_population_make", "electric_vehicle_population", ["make"])
    op.create_index(
        "idx_electric_vehicle_population_vehicle_location_point",
        "electric_vehicle_population",
        ["vehicle_location_point"],
        postgresql_using="gist",
    )


def downgrade() -> None:
    op.drop_index(
        "idx_electric_vehicle_population_vehicle_location_point",
        table_name="electric_vehicle_population",
    )
    op.drop_index("ix_electric_vehicle_population_make", table_name="electric_vehicle_population")
    op.drop_table("electric_vehicle_population")
