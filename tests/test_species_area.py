"""
Tests for species-area accumulation and nonlinear model fitting.
"""
import time

import numpy as np
import pytest

from pyspeciespool.results import CURVE_MODELS
from pyspeciespool.species_area import (
    AccumulationCurve,
    FitTimeout,
    accumulate_species_area,
    arrhenius,
    asymptotic,
    fit_model,
    fit_species_area_models,
    gompertz,
    michaelis_menten,
    predict,
)

AREA = np.linspace(1.0, 50.0, 30)
# Small deterministic perturbation so that residuals are never exactly zero
NOISE = 0.05 * np.sin(np.arange(30))

# (model, true parameters)
MODEL_CASES = [
    pytest.param('arrhenius', {'k': 5.0, 'z': 0.3}, id="arrhenius"),
    pytest.param('gompertz', {'asym': 30.0, 'b2': 10.0, 'b3': 8.0}, id="gompertz"),
    pytest.param('michaelis_menten', {'vm': 40.0, 'k': 10.0}, id="michaelis_menten"),
    pytest.param('asymptotic', {'asym': 35.0, 'r0': 2.0, 'lrc': np.log(0.1)}, id="asymptotic"),
]

MODEL_FUNCTIONS = {
    'arrhenius': arrhenius,
    'gompertz': gompertz,
    'michaelis_menten': michaelis_menten,
    'asymptotic': asymptotic,
}


def _synthetic(name, params):
    func = MODEL_FUNCTIONS[name]
    names = CURVE_MODELS[name][1]
    return func(AREA, *(params[p] for p in names)) + NOISE


class TestAccumulation:
    """Tests for accumulate_species_area."""

    @pytest.fixture
    def incidence(self):
        rng = np.random.default_rng(5)
        incidence = rng.random((15, 20)) < 0.3
        incidence[:, 0] = True
        return incidence

    def test_one_point_per_plot(self, incidence):
        areas = np.full(15, 10.0)
        curve = accumulate_species_area(incidence, areas, 10, np.random.default_rng(0))
        assert isinstance(curve, AccumulationCurve)
        assert len(curve) == 15

    def test_end_point_is_total(self, incidence):
        """After pooling every plot, area and richness are the totals."""
        areas = np.arange(1.0, 16.0)
        curve = accumulate_species_area(incidence, areas, 25, np.random.default_rng(0))
        assert curve.area[-1] == pytest.approx(areas.sum())
        assert curve.richness[-1] == pytest.approx(incidence.any(axis=0).sum())

    def test_monotone(self, incidence):
        curve = accumulate_species_area(incidence, np.full(15, 4.0), 25, np.random.default_rng(0))
        assert np.all(np.diff(curve.area) > 0)
        assert np.all(np.diff(curve.richness) >= 0)

    def test_equal_areas_give_exact_cumulative_area(self, incidence):
        curve = accumulate_species_area(incidence, np.full(15, 4.0), 7, np.random.default_rng(3))
        np.testing.assert_allclose(curve.area, 4.0 * np.arange(1, 16))

    def test_reproducible_with_seed(self, incidence):
        areas = np.arange(1.0, 16.0)
        first = accumulate_species_area(incidence, areas, 10, np.random.default_rng(8))
        second = accumulate_species_area(incidence, areas, 10, np.random.default_rng(8))
        np.testing.assert_array_equal(first.richness, second.richness)
        np.testing.assert_array_equal(first.area, second.area)


class TestFitModel:
    """Tests for fit_model."""

    @pytest.mark.parametrize("name,params", MODEL_CASES)
    def test_recovers_parameters(self, name, params):
        fit = fit_model(name, AREA, _synthetic(name, params))
        assert fit is not None
        assert fit.model == name
        for key, value in params.items():
            assert fit.params[key] == pytest.approx(value, rel=0.05, abs=0.05)

    @pytest.mark.parametrize("name,params", MODEL_CASES)
    def test_aic_formula(self, name, params):
        fit = fit_model(name, AREA, _synthetic(name, params))
        n = len(AREA)
        p = len(CURVE_MODELS[name][1])
        expected = n * (np.log(2 * np.pi) + 1 + np.log(fit.rss / n)) + 2 * (p + 1)
        assert fit.aic == pytest.approx(expected)

    def test_too_few_points_unavailable(self):
        """Fewer observations than parameters cannot be fitted."""
        assert fit_model('gompertz', np.array([1.0, 2.0]), np.array([3.0, 4.0])) is None

    def test_passed_deadline_raises(self):
        y = _synthetic('arrhenius', {'k': 5.0, 'z': 0.3})
        with pytest.raises(FitTimeout):
            fit_model('arrhenius', AREA, y, deadline=time.monotonic() - 1.0)

    def test_predict_matches_model(self):
        params = {'vm': 40.0, 'k': 10.0}
        fit = fit_model('michaelis_menten', AREA, _synthetic('michaelis_menten', params))
        np.testing.assert_allclose(predict(fit, AREA),
                                   michaelis_menten(AREA, fit.params['vm'], fit.params['k']))


class TestFitSpeciesAreaModels:
    """Tests for fit_species_area_models."""

    @pytest.fixture
    def curve(self):
        return AccumulationCurve(area=AREA, richness=_synthetic('michaelis_menten',
                                                                {'vm': 40.0, 'k': 10.0}))

    def test_all_models_attempted(self, curve):
        result = fit_species_area_models(curve, timeout=None)
        assert not result.timed_out
        assert list(result.fits()) == list(CURVE_MODELS)
        assert result.michaelis_menten is not None
        assert result.arrhenius is not None

    def test_timeout_abandons_remaining_models(self, curve):
        result = fit_species_area_models(curve, timeout=0.0)
        assert result.timed_out
        assert all(fit is None for fit in result.fits().values())
        assert result.any_unavailable
