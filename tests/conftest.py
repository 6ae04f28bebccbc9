"""Shared test fixtures for settings and vehicle CSV files."""

from collections.abc import Callable
from pathlib import Path

import pytest

from ev_api.core.config import Settings

VEHICLE_HEADER = (
    "VIN (1-10),County,City,State,Postal Code,Model Year,Make,Model,Electric Vehicle Type,"
    "Clean Alternative Fuel Vehicle (CAFV) Eligibility,Electric Range,Base MSRP,Legislative District,"
    "DOL Vehicle ID,Vehicle Location,Electric Utility,2020 Census Tract"
)


def vehicle_line(vin: str, dol_id: int, *, make: str = "TESLA", location: str = "POINT (-122.33 47.60)") -> str:
    """Build one CSV data line with the given VIN and DOL id."""
    return (
        f"{vin},King,Seattle,WA,98101,2020,{make},MODEL 3,Battery Electric Vehicle (BEV),"
        f"Clean Alternative Fuel Vehicle Eligible,266,0,43,{dol_id},{location},"
        f"CITY OF SEATTLE - (WA),53033008100"
    )


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        database_url="sqlite+aiosqlite:///:memory:",
        loader_batch_size=2,
        loader_max_upload_mb=1,
    )


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Return a helper that writes CSV text to a temp file and returns its path."""

    def _write(lines: list[str], name: str = "vehicles.csv", header: str = VEHICLE_HEADER) -> Path:
        path = tmp_path / name
        path.write_text("\n".join([header, *lines]) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def five_vehicle_csv(write_csv: Callable[..., Path]) -> Path:
    """A CSV with five distinct vehicles."""
    return write_csv([vehicle_line(f"VIN000000{i}", 1000 + i) for i in range(5)])
