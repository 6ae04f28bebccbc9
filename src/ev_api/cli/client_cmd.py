"""Client CLI commands that drive a running EV API server over HTTP.

Pure HTTP client: no database or internal service imports.  Covers CSV
loads and job status as well as vehicle lookups and edits.
"""

import json
import time
from pathlib import Path
from typing import Any

import httpx
import typer

from ev_api.core.config import get_settings

client_app = typer.Typer()

_TERMINAL = {"COMPLETED", "FAILED"}


def _base_url(url: str | None) -> str:
    return (url or get_settings().api_base_url).rstrip("/")


def _fail(message: str) -> typer.Exit:
    typer.echo(typer.style(message, fg=typer.colors.RED, bold=True), err=True)
    return typer.Exit(code=1)


def _get_status(client: httpx.Client, base: str, job_id: str) -> dict[str, Any]:
    """Fetch one job status, raising typer.Exit on any error."""
    try:
        resp = client.get(f"{base}{get_settings().api_v1_prefix}/data-loader/job-status/{job_id}")
    except httpx.HTTPError as exc:
        raise _fail(f"Request failed: {exc}") from exc
    if resp.status_code == 404:
        raise _fail(f"Job {job_id} not found")
    if resp.status_code != 200:
        raise _fail(f"Unexpected status {resp.status_code}: {resp.text}")
    return resp.json()


def _print_status(data: dict[str, Any]) -> None:
    typer.echo(
        f"{data['job_id']}  {data['status']:<9s} "
        f"{data['records_processed']}/{data['total_records']} ({data['progress']:.2f}%)"
    )
    if data.get("error_message"):
        typer.echo(f"  Error: {data['error_message']}")


@client_app.command("load")
def load(
    file: Path = typer.Argument(..., help="Path to vehicle CSV file", exists=True, dir_okay=False),  # noqa: B008
    batch_size: int | None = typer.Option(None, "--batch-size", min=1, help="Records per transaction"),
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Poll until the job finishes"),
    poll_interval: float = typer.Option(2.0, "--poll-interval", min=0.0, help="Seconds between status polls"),
    url: str | None = typer.Option(None, "--url", help="Base URL of the API server"),
) -> None:
    """Upload a CSV file to the server and optionally wait for the load to finish."""
    settings = get_settings()
    base = _base_url(url)
    params = {"batch_size": batch_size} if batch_size else {}

    with httpx.Client(timeout=settings.api_timeout) as client:
        try:
            with file.open("rb") as fh:
                resp = client.post(
                    f"{base}{settings.api_v1_prefix}/data-loader/load-csv",
                    params=params,
                    files={"file": (file.name, fh, "text/csv")},
                )
        except httpx.HTTPError as exc:
            raise _fail(f"Upload failed: {exc}") from exc

        if resp.status_code != 202:
            raise _fail(f"Upload rejected ({resp.status_code}): {resp.text}")

        job_id = resp.json()["job_id"]
        typer.echo(f"Job accepted: {job_id}")
        if not wait:
            return

        while True:
            data = _get_status(client, base, job_id)
            _print_status(data)
            if data["status"] in _TERMINAL:
                break
            time.sleep(poll_interval)

    if data["status"] == "FAILED":
        raise typer.Exit(code=1)


@client_app.command("status")
def status(
    job_id: str = typer.Argument(..., help="Job identifier"),
    url: str | None = typer.Option(None, "--url", help="Base URL of the API server"),
) -> None:
    """Show the status of a data loading job."""
    settings = get_settings()
    with httpx.Client(timeout=settings.api_timeout) as client:
        data = _get_status(client, _base_url(url), job_id)
    _print_status(data)


# ---------------------------------------------------------------------------
# Vehicle commands
# ---------------------------------------------------------------------------


def _vehicles_url(base: str) -> str:
    return f"{base}{get_settings().api_v1_prefix}/vehicles"


def _send(client: httpx.Client, method: str, url: str, **kwargs: Any) -> httpx.Response:
    try:
        return client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        raise _fail(f"Request failed: {exc}") from exc


def _expect(resp: httpx.Response, expected: int, not_found: str | None = None) -> None:
    """Raise typer.Exit unless the response has the expected status."""
    if resp.status_code == expected:
        return
    if resp.status_code == 404 and not_found is not None:
        raise _fail(not_found)
    try:
        detail = resp.json().get("detail", resp.text)
    except ValueError:
        detail = resp.text
    raise _fail(f"Request rejected ({resp.status_code}): {detail}")


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2))


def _read_json_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError) as exc:
        raise _fail(f"Cannot read vehicle JSON from {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise _fail(f"{path} must contain a JSON object")
    return data


@client_app.command("get")
def get_vehicle(
    vin: str = typer.Argument(..., help="VIN of the vehicle"),
    url: str | None = typer.Option(None, "--url", help="Base URL of the API server"),
) -> None:
    """Show one vehicle as JSON."""
    with httpx.Client(timeout=get_settings().api_timeout) as client:
        resp = _send(client, "GET", f"{_vehicles_url(_base_url(url))}/{vin}")
    _expect(resp, 200, not_found=f"Vehicle {vin} not found")
    _echo_json(resp.json())


@client_app.command("list")
def list_vehicles(
    page: int = typer.Option(1, "--page", min=1, help="Page number (1-based)"),
    page_size: int = typer.Option(20, "--page-size", min=1, max=100, help="Vehicles per page"),
    make: str | None = typer.Option(None, "--make", help="Filter by make (case-insensitive)"),
    model: str | None = typer.Option(None, "--model", help="Filter by model (case-insensitive)"),
    url: str | None = typer.Option(None, "--url", help="Base URL of the API server"),
) -> None:
    """List vehicles one per line."""
    params: dict[str, Any] = {"page": page, "page_size": page_size}
    if make:
        params["make"] = make
    if model:
        params["model"] = model

    with httpx.Client(timeout=get_settings().api_timeout) as client:
        resp = _send(client, "GET", _vehicles_url(_base_url(url)), params=params)
    _expect(resp, 200)

    data = resp.json()
    for item in data["items"]:
        typer.echo(f"{item['vin']}  {item['model_year'] or '':<4} {item['make'] or ''} {item['model'] or ''}")
    meta = data["pagination"]
    typer.echo(f"Page {meta['page']} of {meta['total_pages']} ({meta['total']} vehicles)")


@client_app.command("create")
def create_vehicle(
    file: Path | None = typer.Option(  # noqa: B008
        None, "--file", "-f", exists=True, dir_okay=False, help="JSON file with the vehicle; replaces the options"
    ),
    vin: str | None = typer.Option(None, "--vin", help="VIN (first ten characters)"),
    make: str | None = typer.Option(None, "--make"),
    model: str | None = typer.Option(None, "--model"),
    model_year: int | None = typer.Option(None, "--year", help="Model year"),
    dol_vehicle_id: int | None = typer.Option(None, "--dol-id", help="DOL vehicle id"),
    county: str | None = typer.Option(None, "--county"),
    city: str | None = typer.Option(None, "--city"),
    state: str | None = typer.Option(None, "--state"),
    postal_code: str | None = typer.Option(None, "--zip"),
    electric_vehicle_type: str | None = typer.Option(None, "--ev-type"),
    cafv_eligibility_status: str | None = typer.Option(None, "--cafv-status"),
    electric_range: int | None = typer.Option(None, "--range", help="Electric range in miles"),
    base_msrp: str | None = typer.Option(None, "--msrp", help="Base MSRP, e.g. 39990.00"),
    legislative_district: str | None = typer.Option(None, "--district"),
    electric_utility: str | None = typer.Option(None, "--utility"),
    census_tract_2020: int | None = typer.Option(None, "--census-tract"),
    longitude: float | None = typer.Option(None, "--longitude"),
    latitude: float | None = typer.Option(None, "--latitude"),
    url: str | None = typer.Option(None, "--url", help="Base URL of the API server"),
) -> None:
    """Create a vehicle from a JSON file or from options."""
    if file is not None:
        body = _read_json_file(file)
    else:
        required = {"--vin": vin, "--make": make, "--model": model, "--year": model_year, "--dol-id": dol_vehicle_id}
        missing = [name for name, value in required.items() if value is None]
        if missing:
            raise _fail(f"Missing {', '.join(missing)} (or pass --file)")
        if (longitude is None) != (latitude is None):
            raise _fail("--longitude and --latitude must be given together")
        fields = {
            "vin": vin,
            "make": make,
            "model": model,
            "model_year": model_year,
            "dol_vehicle_id": dol_vehicle_id,
            "county": county,
            "city": city,
            "state": state,
            "postal_code": postal_code,
            "electric_vehicle_type": electric_vehicle_type,
            "cafv_eligibility_status": cafv_eligibility_status,
            "electric_range": electric_range,
            "base_msrp": base_msrp,
            "legislative_district": legislative_district,
            "electric_utility": electric_utility,
            "census_tract_2020": census_tract_2020,
        }
        body = {name: value for name, value in fields.items() if value is not None}
        if longitude is not None:
            body["vehicle_location"] = {"longitude": longitude, "latitude": latitude}

    with httpx.Client(timeout=get_settings().api_timeout) as client:
        resp = _send(client, "POST", _vehicles_url(_base_url(url)), json=body)
    _expect(resp, 201)
    typer.echo(f"Created vehicle {resp.json()['vin']}")
    _echo_json(resp.json())


@client_app.command("update")
def update_vehicle(
    vin: str = typer.Argument(..., help="VIN of the vehicle to update"),
    file: Path = typer.Option(  # noqa: B008
        ..., "--file", "-f", exists=True, dir_okay=False, help="JSON file with the replacement attributes"
    ),
    url: str | None = typer.Option(None, "--url", help="Base URL of the API server"),
) -> None:
    """Replace a vehicle's attributes from a JSON file."""
    body = _read_json_file(file)
    body.setdefault("vin", vin)

    with httpx.Client(timeout=get_settings().api_timeout) as client:
        resp = _send(client, "PUT", f"{_vehicles_url(_base_url(url))}/{vin}", json=body)
    _expect(resp, 200, not_found=f"Vehicle {vin} not found")
    typer.echo(f"Updated vehicle {vin}")
    _echo_json(resp.json())


@client_app.command("delete")
def delete_vehicle(
    vin: str = typer.Argument(..., help="VIN of the vehicle to delete"),
    url: str | None = typer.Option(None, "--url", help="Base URL of the API server"),
) -> None:
    """Delete a vehicle."""
    with httpx.Client(timeout=get_settings().api_timeout) as client:
        resp = _send(client, "DELETE", f"{_vehicles_url(_base_url(url))}/{vin}")
    _expect(resp, 204, not_found=f"Vehicle {vin} not found")
    typer.echo(f"Deleted vehicle {vin}")


@client_app.command("update-msrp")
def update_msrp(
    make: str = typer.Option(..., "--make", help="Make of the vehicles, e.g. TESLA"),
    model: str = typer.Option(..., "--model", help="Model of the vehicles, e.g. Model Y"),
    new_msrp: str = typer.Option(..., "--new-msrp", help="New base MSRP, e.g. 75990.00"),
    url: str | None = typer.Option(None, "--url", help="Base URL of the API server"),
) -> None:
    """Set the base MSRP of every vehicle of a make and model."""
    body = {"make": make, "model": model, "new_base_msrp": new_msrp}
    with httpx.Client(timeout=get_settings().api_timeout) as client:
        resp = _send(client, "PATCH", f"{_vehicles_url(_base_url(url))}/batch/msrp", json=body)
    _expect(resp, 200)
    typer.echo(f"Updated base MSRP for {resp.json()['updated_count']} {make} {model} vehicles")
