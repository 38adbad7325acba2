"""
EvolvingHome CLI.

Command-line access to the building, roof, solar and score operations.
"""

from __future__ import annotations

from typing import Callable, List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .core.config import get_settings
from .core.errors import ErrorKind, Outcome, capture
from .core.models import Coordinate
from .geo.footprint_resolver import BuildingResolver, OverpassFootprintProvider
from .geo.geocoder import NominatimGeocoder
from .geometry.irradiance import LatitudeIrradianceProvider, PVGISIrradianceProvider
from .geometry.pv_potential import SolarPotentialEstimator
from .operations import Operations
from .scoring.engine import distinct_categories
from .utils.logging_config import ensure_logging
from .utils.retry import retry_with_backoff

app = typer.Typer(
    name="evolvinghome",
    help="EvolvingHome - home energy score, building footprint and rooftop solar estimates",
    add_completion=False,
)
console = Console()

EXIT_CODES = {
    ErrorKind.VALIDATION: 2,
    ErrorKind.NOT_FOUND: 3,
    ErrorKind.UPSTREAM_UNAVAILABLE: 4,
    ErrorKind.INVARIANT_VIOLATION: 5,
}


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR"),
):
    settings = get_settings()
    ensure_logging(log_level or settings.log_level, settings.log_file)


def _operations(offline: bool = False) -> Operations:
    settings = get_settings()
    geocoder = NominatimGeocoder(settings)
    irradiance = LatitudeIrradianceProvider() if offline else PVGISIrradianceProvider(settings)
    return Operations(
        geocoder=geocoder,
        resolver=BuildingResolver(OverpassFootprintProvider(settings), geocoder, settings),
        solar_estimator=SolarPotentialEstimator(irradiance, settings),
        settings=settings,
    )


def _run(call: Callable[[], Outcome], retries: int = 0) -> Outcome:
    """Run a boundary operation, retrying upstream failures if asked."""
    if retries <= 0:
        return call()

    def on_retry(exc: Exception, attempt: int) -> None:
        console.print(f"[yellow]Upstream unavailable, retry {attempt + 1}/{retries}...[/yellow]")

    attempt = retry_with_backoff(lambda: call().unwrap(), max_retries=retries, on_retry=on_retry)
    return capture(attempt)


def _value_or_exit(outcome: Outcome):
    if outcome.ok:
        return outcome.value
    error = outcome.error
    console.print(f"[red]{error.kind.value}:[/red] {error.message}")
    for suggestion in getattr(error, "suggestions", []):
        console.print(f"  [dim]{suggestion}[/dim]")
    raise typer.Exit(code=EXIT_CODES[outcome.kind])


def _location(postcode: Optional[str], lat: Optional[float], lon: Optional[float]) -> Optional[Coordinate]:
    if postcode is None and (lat is None or lon is None):
        console.print("[red]Give --postcode, or both --lat and --lon[/red]")
        raise typer.Exit(code=EXIT_CODES[ErrorKind.VALIDATION])
    return Coordinate(lat, lon) if postcode is None else None


@app.command()
def building(
    postcode: Optional[str] = typer.Option(None, "--postcode", "-p", help="UK postcode"),
    lat: Optional[float] = typer.Option(None, "--lat", help="Latitude"),
    lon: Optional[float] = typer.Option(None, "--lon", help="Longitude"),
    floor_area: Optional[float] = typer.Option(None, "--floor-area", help="Declared total floor area (m²)"),
    retries: int = typer.Option(0, "--retries", help="Retry upstream failures this many times"),
):
    """
    Resolve the building footprint at a postcode or coordinate.
    """
    coordinate = _location(postcode, lat, lon)
    ops = _operations()
    footprint = _value_or_exit(
        _run(lambda: ops.resolve_building(coordinate, postcode, floor_area), retries)
    )

    table = Table(title="Building Footprint")
    table.add_column("Attribute", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("OSM id", footprint.osm_id or "-")
    table.add_row("Building tag", footprint.building_type or "-")
    table.add_row("Property type", footprint.property_type.value)
    table.add_row("Footprint area", f"{footprint.area_m2:.1f} m²")
    table.add_row("Perimeter", f"{footprint.perimeter_m:.1f} m")
    table.add_row("Floors", str(footprint.floors))
    table.add_row("Orientation", f"{footprint.orientation_label} ({footprint.orientation_deg:.0f}°)")
    table.add_row("Centroid", f"{footprint.centroid.lat:.6f}, {footprint.centroid.lon:.6f}")
    table.add_row("Match", "contains point" if footprint.contains_point else f"{footprint.distance_m:.1f} m away")
    console.print(table)


@app.command()
def roof(
    floor_area: float = typer.Argument(..., help="Total floor area (m²)"),
    floors: int = typer.Option(1, "--floors", "-f", help="Number of storeys"),
    property_type: str = typer.Option("other", "--type", "-t", help="detached, semi-detached, terraced, flat, bungalow"),
):
    """
    Estimate usable roof area for solar panels.
    """
    estimate = _value_or_exit(_operations(offline=True).estimate_roof_capacity(floor_area, floors, property_type))

    console.print(Panel.fit(
        f"[bold]Usable roof area:[/bold] {estimate.roof_area_m2:.1f} m²\n"
        f"Footprint: {estimate.footprint_m2:.1f} m²\n"
        f"Usable fraction ({estimate.property_type.value}): {estimate.usable_fraction:.0%}",
        title="Roof Capacity",
    ))


@app.command()
def solar(
    postcode: Optional[str] = typer.Option(None, "--postcode", "-p", help="UK postcode"),
    lat: Optional[float] = typer.Option(None, "--lat", help="Latitude"),
    lon: Optional[float] = typer.Option(None, "--lon", help="Longitude"),
    roof_area: Optional[float] = typer.Option(None, "--roof-area", help="Usable roof area (m²)"),
    peak_power: Optional[float] = typer.Option(None, "--peak-power", help="Declared system size (kWp)"),
    property_type: str = typer.Option("other", "--type", "-t", help="Property type (postcode mode)"),
    floor_area: Optional[float] = typer.Option(None, "--floor-area", help="Total floor area (postcode mode)"),
    floors: Optional[int] = typer.Option(None, "--floors", help="Number of storeys (postcode mode)"),
    offline: bool = typer.Option(False, "--offline/--pvgis", help="Use the UK latitude table instead of PVGIS"),
    retries: int = typer.Option(0, "--retries", help="Retry upstream failures this many times"),
):
    """
    Estimate rooftop solar generation, savings and payback.
    """
    coordinate = _location(postcode, lat, lon)
    ops = _operations(offline)

    if postcode:
        assessment = _value_or_exit(
            _run(lambda: ops.assess_postcode(postcode, property_type, floor_area, floors), retries)
        )
        result = assessment.solar
        console.print(f"[cyan]{assessment.postcode}[/cyan] → "
                      f"{assessment.coordinate.lat:.4f}, {assessment.coordinate.lon:.4f}")
        for note in assessment.notes:
            console.print(f"  [dim]{note}[/dim]")
    else:
        result = _value_or_exit(
            _run(lambda: ops.estimate_solar(coordinate, roof_area, peak_power), retries)
        )

    table = Table(title="Solar Potential")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("System size", f"{result.peak_power_kwp:.2f} kWp" + (" (capped)" if result.capacity_capped else ""))
    table.add_row("Annual generation", f"{result.annual_generation_kwh:,.0f} kWh")
    table.add_row("Annual savings", f"£{result.annual_savings:,.2f}")
    table.add_row("CO₂ avoided", f"{result.co2_avoided_kg:,.0f} kg/yr")
    table.add_row("Install cost", f"£{result.install_cost:,.0f}")
    table.add_row("Payback", f"{result.payback_years:.1f} years" if result.payback_years is not None else "never")
    console.print(table)

    a = result.assumptions
    console.print(
        f"[dim]Irradiance {a.irradiance_factor_kwh_per_kwp:.0f} kWh/kWp ({a.irradiance_source}), "
        f"efficiency {a.system_efficiency:.0%}, unit price £{a.unit_price:.3f}/kWh[/dim]"
    )


@app.command()
def score(
    baseline: float = typer.Argument(..., help="EPC efficiency rating (0-100)"),
    improvements: Optional[List[str]] = typer.Option(
        None, "--improvement", "-i", help="Improvement category (repeatable)"
    ),
):
    """
    Compute a home's energy score from its EPC baseline and improvements.
    """
    result = _value_or_exit(_operations(offline=True).compute_score(baseline, improvements or []))

    table = Table(title="Home Energy Score")
    table.add_column("Component", style="cyan")
    table.add_column("Points", style="green", justify="right")
    table.add_row("EPC baseline", f"{baseline:g}")
    settings = get_settings()
    for category in sorted(distinct_categories(improvements), key=lambda c: c.value):
        table.add_row(category.value.replace("_", " "), f"+{settings.score_deltas[category]:g}")
    table.add_row("[bold]Score[/bold]", f"[bold]{result}[/bold]")
    console.print(table)


if __name__ == "__main__":
    app()
