"""ORM model registry: import all models so Alembic autogenerate discovers them."""

from ev_api.models.vehicle import ElectricVehicle

__all__ = [
    "ElectricVehicle",
]
