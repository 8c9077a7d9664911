#!/usr/bin/env python3
"""
Example: Species Pool Estimation Workflow

This example runs the species pool pipeline on a vegetation survey and
prints a summary table of the estimates.

The workflow covers:
1. Loading a species table and a plot table (or building a synthetic survey)
2. Estimating richness, species-area curves and the Beals cutoff per plot
3. Displaying the results and the per-plot outcome codes

Usage:
    # With a synthetic survey (no data needed):
    python examples/species_pool_example.py

    # With your own data (columns read by position):
    #   species.csv: plot id, species id, abundance
    #   plots.csv:   longitude, latitude, plot id, area
    python examples/species_pool_example.py species.csv plots.csv

Requirements:
    - pyspeciespool (this package)
    - rich (for terminal output)
"""
import sys

import numpy as np
import pandas as pd
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pyspeciespool import SpeciesPoolError, TargetOutcome, setup_logging, species_pool

console = Console()


# =============================================================================
# Survey Data
# =============================================================================

def synthetic_survey(n_plots=60, n_species=40, seed=1):
    """Plots scattered within about 10 km, with a north-south gradient.

    Returns (species_df, plots_df) in longitude/latitude degrees.
    """
    rng = np.random.default_rng(seed)
    lon = 10.0 + rng.uniform(-0.05, 0.05, n_plots)
    lat = 47.0 + rng.uniform(-0.05, 0.05, n_plots)

    # Species optima along latitude; presence falls off with distance to the optimum
    optima = np.linspace(lat.min(), lat.max(), n_species)
    prob = 0.8 * np.exp(-((lat[:, None] - optima[None, :]) / 0.03) ** 2)
    presence = rng.random((n_plots, n_species)) < prob
    presence[np.arange(n_plots), rng.integers(0, n_species, n_plots)] = True

    plot_ids = [f"R{i:04d}" for i in range(n_plots)]
    rows, cols = np.nonzero(presence)
    species_df = pd.DataFrame({
        'releve': [plot_ids[r] for r in rows],
        'species': [f"Species {c:02d}" for c in cols],
        'cover': rng.integers(1, 60, len(rows)),
    })
    plots_df = pd.DataFrame({
        'lon': lon,
        'lat': lat,
        'releve': plot_ids,
        'area': rng.choice([16.0, 25.0, 50.0, 100.0], n_plots),
    })
    return species_df, plots_df


# =============================================================================
# Display
# =============================================================================

def show_results(table):
    """Print the first rows of the output table and an outcome summary."""
    summary = Table(title="Species pool estimates")
    for column in ("Plot", "Obs.", "iChao2", "Jack1", "Gompertz", "Beals cutoff", "Pool"):
        summary.add_column(column, justify="right")

    def fmt(value, digits=1):
        return "-" if pd.isna(value) else f"{value:.{digits}f}"

    for _, row in table.head(15).iterrows():
        pool = row.get('sp_pool_list')
        summary.add_row(
            str(row['plot_id']),
            "-" if pd.isna(row['species']) else str(row['species']),
            fmt(row['ichao2']),
            fmt(row['jack1']),
            fmt(row['gomp_asym']),
            fmt(row['beals_at_cutoff'], 3),
            "-" if pool is None else str(len(pool)),
        )
    console.print(summary)

    outcomes = Table(title="Outcomes")
    outcomes.add_column("Outcome")
    outcomes.add_column("Plots", justify="right")
    codes = table['outcomes'].str.split(';').explode()
    for outcome in TargetOutcome:
        outcomes.add_row(outcome.value, str(int((codes == outcome.value).sum())))
    outcomes.add_row("[green]complete[/green]", str(int((table['outcomes'] == "").sum())))
    console.print(outcomes)


# =============================================================================
# Main Entry Point
# =============================================================================

def main() -> None:
    console.print(Panel.fit(
        "[bold]Species Pool Estimation Example[/bold]\n"
        "[dim]Beals smoothing, richness estimators and species-area curves[/dim]",
        border_style="bold blue"
    ))
    setup_logging("WARNING")

    if len(sys.argv) >= 3:
        console.print(f"\n[cyan]Species table: {sys.argv[1]}[/cyan]")
        console.print(f"[cyan]Plot table: {sys.argv[2]}[/cyan]\n")
        species_df = pd.read_csv(sys.argv[1])
        plots_df = pd.read_csv(sys.argv[2])
    else:
        console.print("\n[yellow]No data specified. Running with a synthetic survey.[/yellow]\n")
        species_df, plots_df = synthetic_survey()

    try:
        with console.status("Estimating species pools..."):
            table = species_pool(
                species_df, plots_df,
                geodesic=True,
                radius=20000,
                bray_threshold=0.2,
                min_plots=10,
                species_list=True,
                seed=42,
            )
    except SpeciesPoolError as e:
        console.print(f"\n[red]Error: {e}[/red]")
        sys.exit(1)

    show_results(table)
    console.print("\n[bold green]Example complete![/bold green]")


if __name__ == "__main__":
    main()
