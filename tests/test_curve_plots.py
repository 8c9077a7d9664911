"""
Smoke tests for the plotting helpers.
"""
import matplotlib

matplotlib.use("Agg")

import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
import pytest  # noqa: E402

from pyspeciespool.curve_plots import plot_pool_estimates, plot_species_area_curve  # noqa: E402
from pyspeciespool.species_area import (  # noqa: E402
    AccumulationCurve,
    fit_species_area_models,
    michaelis_menten,
)


@pytest.fixture
def curve():
    area = np.linspace(1.0, 40.0, 20)
    richness = michaelis_menten(area, 30.0, 8.0) + 0.05 * np.cos(np.arange(20))
    return AccumulationCurve(area=area, richness=richness)


def test_species_area_curve_saved(curve, tmp_path):
    path = tmp_path / "curve.png"
    plot_species_area_curve(curve, fit_species_area_models(curve), title="P001", save_path=path)
    assert path.exists()
    assert path.stat().st_size > 0


def test_pool_estimates_saved(tmp_path):
    results = pd.DataFrame({
        'plot_id': ['P1', 'P2', 'P3'],
        'species': pd.array([12, 15, None], dtype='Int64'),
        'chao': [13.0, 16.5, np.nan],
        'ichao2': [13.4, 16.9, np.nan],
        'jack1': [14.0, 17.2, np.nan],
        'jack2': [14.6, 18.0, np.nan],
        'beals_at_cutoff': [0.21, 0.18, np.nan],
    })
    path = tmp_path / "estimates.png"
    plot_pool_estimates(results, save_path=path)
    assert path.exists()
