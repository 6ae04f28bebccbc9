"""ElectricVehicle model: one row of the Washington State EV population dataset."""

from decimal import Decimal

from geoalchemy2 import Geometry
from sqlalchemy import BigInteger, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from ev_api.models.base import Base


class ElectricVehicle(Base):
    """A registered electric vehicle keyed by the first ten characters of its VIN."""

    __tablename__ = "electric_vehicle_population"

    vin: Mapped[str] = mapped_column(String(10), primary_key=True)

    # Registration address
    county: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(255), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Vehicle
    model_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    make: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    model: Mapped[str | None] = mapped_column(String(255), nullable=True)
    electric_vehicle_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cafv_eligibility_status: Mapped[str | None] = mapped_column(String(255), nullable=True)
    electric_range: Mapped[int | None] = mapped_column(Integer, nullable=True)
    base_msrp: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    # Administrative
    legislative_district: Mapped[str | None] = mapped_column(String(50), nullable=True)
    dol_vehicle_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    electric_utility: Mapped[str | None] = mapped_column(String(255), nullable=True)
    census_tract_2020: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    vehicle_location_point: Mapped[object | None] = mapped_column(
        Geometry(geometry_type="POINT", srid=4326), nullable=True
    )
