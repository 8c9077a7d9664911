"""
Shared pytest fixtures for PySpeciesPool tests.

This module provides synthetic vegetation surveys (species tables and plot
tables) and prepared survey data, reducing duplication across test files.
"""
import logging

import numpy as np
import pandas as pd
import pytest

from pyspeciespool.data import prepare_survey_data
from pyspeciespool.logging_config import PACKAGE_LOGGER

N_SPECIES = 30


def _make_community(n_plots, seed=42, spacing=100.0, n_species=N_SPECIES, origin=(0.0, 0.0)):
    """Random community on a square grid of plots.

    Species frequencies rise linearly from 15% to 90%; the last species
    occurs in every plot so that no plot is empty.
    """
    rng = np.random.default_rng(seed)
    probs = np.linspace(0.15, 0.9, n_species)
    presence = rng.random((n_plots, n_species)) < probs
    presence[:, -1] = True

    plot_ids = [f"P{i:03d}" for i in range(n_plots)]
    species_ids = [f"sp{j:02d}" for j in range(n_species)]
    rows, cols = np.nonzero(presence)
    species_df = pd.DataFrame({
        'releve': [plot_ids[r] for r in rows],
        'taxon': [species_ids[c] for c in cols],
        'cover': rng.uniform(1.0, 50.0, len(rows)).round(1),
    })

    side = int(np.ceil(np.sqrt(n_plots)))
    plots_df = pd.DataFrame({
        'x': [origin[0] + (i % side) * spacing for i in range(n_plots)],
        'y': [origin[1] + (i // side) * spacing for i in range(n_plots)],
        'releve': plot_ids,
        'area': 100.0 + np.arange(n_plots) * 5.0,
    })
    return species_df, plots_df


# =============================================================================
# Synthetic Surveys
# =============================================================================

@pytest.fixture
def community_factory():
    """Return the community builder for tests that need custom layouts.

    Signature: (n_plots, seed=42, spacing=100.0, n_species=30, origin=(0, 0))
    -> (species_df, plots_df)
    """
    return _make_community


@pytest.fixture
def community():
    """A 40-plot community on a 7 x 7 grid with 100 m spacing.

    Returns (species_df, plots_df) with positional columns:
    - species_df: releve, taxon, cover
    - plots_df: x, y, releve, area
    """
    return _make_community(40)


@pytest.fixture
def community_25():
    """A 25-plot community, all plots within a few hundred metres."""
    return _make_community(25, seed=7)


@pytest.fixture
def small_community():
    """A 3-plot community, below any usable minimum plot count."""
    return _make_community(3, seed=3)


@pytest.fixture
def survey_data(community):
    """Prepared planar SurveyData of the 40-plot community."""
    species_df, plots_df = community
    return prepare_survey_data(species_df, plots_df, geodesic=False)


# =============================================================================
# Run Parameters
# =============================================================================

@pytest.fixture
def fast_params():
    """Keyword parameters for quick deterministic pipeline runs.

    - radius 10 km covers every plot of the synthetic grids
    - bray_threshold 1.0 keeps every neighbour sharing any species
    - 20 permutations, no fit timeout, fixed seed
    """
    return {
        'radius': 10000.0,
        'bray_threshold': 1.0,
        'min_plots': 10,
        'permutations': 20,
        'fit_timeout': None,
        'seed': 123,
    }


# =============================================================================
# Logging
# =============================================================================

@pytest.fixture
def reset_package_logger():
    """Restore the package logger after a test configured it."""
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# =============================================================================
# Test Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
