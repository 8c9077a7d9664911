"""
Tests for incidence-based richness estimators.

Reference values are computed by hand from the frequency counts Q1..Q4.
"""
import numpy as np
import pytest

from pyspeciespool.richness import (
    chao2,
    estimate_richness,
    ichao2,
    incidence_frequencies,
    jackknife1,
    jackknife2,
)


# Five sampling units, seven species with incidence counts 1, 1, 1, 2, 2, 3, 5:
# Q1 = 3, Q2 = 2, Q3 = 1, Q4 = 0
REFERENCE_INCIDENCE = np.array([
    [1, 0, 0, 1, 0, 1, 1],
    [0, 1, 0, 1, 0, 1, 1],
    [0, 0, 1, 0, 1, 1, 1],
    [0, 0, 0, 0, 1, 0, 1],
    [0, 0, 0, 0, 0, 0, 1],
])

# (estimator, expected value for the reference incidence)
REFERENCE_CASES = [
    pytest.param('chao2', 8.8, id="chao2"),
    pytest.param('ichao2', 9.05, id="ichao2"),
    pytest.param('jack1', 9.4, id="jackknife1"),
    pytest.param('jack2', 10.3, id="jackknife2"),
]


class TestFrequencyCounts:
    """Tests for incidence_frequencies."""

    def test_reference_counts(self):
        np.testing.assert_array_equal(incidence_frequencies(REFERENCE_INCIDENCE), [3, 2, 1, 0])

    def test_counts_above_four_ignored(self):
        q = incidence_frequencies(np.ones((6, 3)))
        np.testing.assert_array_equal(q, [0, 0, 0, 0])


class TestEstimatorFormulas:
    """Tests for the closed-form estimators."""

    def test_chao2_without_doubletons(self):
        """Bias-corrected form when Q2 = 0."""
        assert chao2(5, np.array([2.0, 0.0, 0.0, 0.0]), 4) == pytest.approx(5.75)

    def test_ichao2_small_sample_equals_chao2(self):
        q = np.array([3.0, 2.0, 1.0, 1.0])
        assert ichao2(7, q, 3) == pytest.approx(chao2(7, q, 3))

    def test_ichao2_not_below_chao2(self):
        q = np.array([4.0, 1.0, 3.0, 0.0])
        assert ichao2(10, q, 8) >= chao2(10, q, 8)

    def test_jackknife_formulas(self):
        q = np.array([3.0, 2.0, 1.0, 0.0])
        assert jackknife1(7, q, 5) == pytest.approx(9.4)
        assert jackknife2(7, q, 5) == pytest.approx(10.3)


class TestEstimateRichness:
    """Tests for estimate_richness."""

    @pytest.fixture(scope="class")
    def reference(self):
        return estimate_richness(REFERENCE_INCIDENCE)

    def test_observed(self, reference):
        assert reference.observed == 7
        assert not reference.any_unavailable

    @pytest.mark.parametrize("name,expected", REFERENCE_CASES)
    def test_reference_values(self, reference, name, expected):
        estimate = getattr(reference, name)
        assert estimate.mean == pytest.approx(expected)

    @pytest.mark.parametrize("name", ['chao2', 'ichao2', 'jack1', 'jack2'])
    def test_standard_errors_finite(self, reference, name):
        se = getattr(reference, name).se
        assert se is not None
        assert np.isfinite(se)
        assert se >= 0.0

    def test_estimates_key_names(self, reference):
        assert list(reference.estimates()) == ['chao', 'ichao2', 'jack1', 'jack2']

    def test_absent_species_ignored(self):
        padded = np.hstack([REFERENCE_INCIDENCE, np.zeros((5, 4), dtype=int)])
        result = estimate_richness(padded)
        assert result.observed == 7
        assert result.chao2.mean == pytest.approx(8.8)

    def test_clamped_to_observed(self):
        """Without singletons the second-order jackknife would fall below S_obs."""
        incidence = np.array([
            [1, 1, 0, 0],
            [1, 0, 1, 0],
            [0, 1, 0, 1],
            [0, 0, 1, 1],
        ])
        result = estimate_richness(incidence)
        assert result.observed == 4
        assert result.jack2.mean == pytest.approx(4.0)
        assert result.chao2.mean == pytest.approx(4.0)

    def test_single_unit_unavailable(self):
        result = estimate_richness(np.array([[1, 1, 0]]))
        assert result.observed == 2
        assert result.chao2 is None
        assert result.ichao2 is None
        assert result.jack1 is None
        assert result.jack2 is None
        assert result.any_unavailable

    def test_only_singletons(self):
        """The Chao family is unavailable when every species is a singleton."""
        result = estimate_richness(np.eye(4, dtype=int))
        assert result.chao2 is None
        assert result.ichao2 is None
        assert result.jack1.mean == pytest.approx(4 + 4 * 3 / 4)
        assert result.jack2 is not None

    def test_all_estimates_not_below_observed(self):
        rng = np.random.default_rng(11)
        for _ in range(20):
            incidence = rng.random((12, 25)) < 0.2
            result = estimate_richness(incidence)
            for estimate in result.estimates().values():
                if estimate is not None:
                    assert estimate.mean >= result.observed
