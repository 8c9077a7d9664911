"""
Tests for the species pool cutoff and pool extraction.
"""
import numpy as np
import pytest

from pyspeciespool.cutoff import (
    beals_at_cutoff,
    cutoff_rank,
    extract_species_pool,
    rank_species,
    resolve_cutoff_value,
)
from pyspeciespool.parameters import CutoffPolicy
from pyspeciespool.results import CurveFitResult, Estimate, ModelFit, RichnessEstimate

SPECIES = tuple(f"s{i}" for i in range(10))
# Three species share 0.5; ranks 5, 6, 7 fall on the tie
TARGET_BEALS = np.array([0.9, 0.1, 0.8, 0.5, 0.5, 0.7, 0.3, 0.5, 0.2, 0.6])

# (cutoff value, expected rank)
RANK_CASES = [
    pytest.param(7.3, 7, id="round_down"),
    pytest.param(6.6, 7, id="round_up"),
    pytest.param(1.0, 1, id="first_rank"),
    pytest.param(10.4, 10, id="last_rank"),
    pytest.param(0.4, None, id="rounds_to_zero"),
    pytest.param(10.6, None, id="beyond_universe"),
    pytest.param(float('nan'), None, id="not_finite"),
    pytest.param(None, None, id="missing"),
]


class TestCutoffRank:
    """Tests for cutoff_rank."""

    @pytest.mark.parametrize("value,expected", RANK_CASES)
    def test_rank(self, value, expected):
        assert cutoff_rank(value, len(SPECIES)) == expected


class TestSpeciesRanking:
    """Tests for rank_species, beals_at_cutoff and extract_species_pool."""

    def test_ties_keep_universe_order(self):
        order = rank_species(TARGET_BEALS)
        assert order.tolist() == [0, 2, 5, 9, 3, 4, 7, 6, 8, 1]

    def test_beals_at_cutoff(self):
        assert beals_at_cutoff(TARGET_BEALS, 7.3) == pytest.approx(0.5)
        assert beals_at_cutoff(TARGET_BEALS, 2.0) == pytest.approx(0.8)

    def test_pool_of_seven(self):
        """An estimate of 7.3 yields the seven highest-ranked species."""
        pool = extract_species_pool(TARGET_BEALS, SPECIES, 7.3)
        assert pool == ('s0', 's2', 's5', 's9', 's3', 's4', 's7')

    def test_pool_unavailable_outside_universe(self):
        assert extract_species_pool(TARGET_BEALS, SPECIES, 12.0) is None
        assert beals_at_cutoff(TARGET_BEALS, 12.0) is None

    def test_pool_members_at_or_above_threshold(self):
        pool = extract_species_pool(TARGET_BEALS, SPECIES, 5.0)
        threshold = beals_at_cutoff(TARGET_BEALS, 5.0)
        values = [TARGET_BEALS[SPECIES.index(s)] for s in pool]
        assert len(pool) == 5
        assert min(values) >= threshold


class TestResolveCutoffValue:
    """Tests for resolve_cutoff_value."""

    @pytest.fixture
    def richness(self):
        return RichnessEstimate(observed=5, chao2=Estimate(6.0, 0.5), ichao2=Estimate(6.4, 0.6),
                                jack1=Estimate(7.0, 1.0), jack2=Estimate(7.5, 1.2))

    @pytest.fixture
    def curves(self):
        return CurveFitResult(
            gompertz=ModelFit('gompertz', {'asym': 8.2, 'b2': 1.0, 'b3': 2.0}, aic=10.0),
            asymptotic=ModelFit('asymptotic', {'asym': 9.1, 'r0': 0.5, 'lrc': -1.0}, aic=11.0),
        )

    def test_ichao2_policy(self, richness, curves):
        assert resolve_cutoff_value(CutoffPolicy.ICHAO2, richness, curves) == pytest.approx(6.4)

    def test_gompertz_policy(self, richness, curves):
        assert resolve_cutoff_value("Gompertz", richness, curves) == pytest.approx(8.2)

    def test_michaelis_alias_uses_asymptotic(self, richness, curves):
        assert resolve_cutoff_value("Michaelis", richness, curves) == pytest.approx(9.1)

    def test_unavailable_source(self, curves):
        assert resolve_cutoff_value(CutoffPolicy.ICHAO2, RichnessEstimate(observed=3), curves) is None
        assert resolve_cutoff_value(CutoffPolicy.GOMPERTZ, None, CurveFitResult()) is None
