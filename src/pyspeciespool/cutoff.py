"""
Species pool size cutoff and pool extraction.

The policy-selected value (iChao2 estimate, or the asymptote of the Gompertz
or asymptotic species-area model) is rounded to a rank r. The target's
species are ordered by decreasing Beals value; the value at rank r is the
inclusion threshold and the first r species form the pool. Species sharing a
Beals value keep their order in the species universe.
"""
from typing import Optional, Sequence, Tuple

import numpy as np

from .parameters import CutoffPolicy
from .results import CurveFitResult, RichnessEstimate

__all__ = [
    'resolve_cutoff_value',
    'cutoff_rank',
    'rank_species',
    'beals_at_cutoff',
    'extract_species_pool',
]


def resolve_cutoff_value(policy: CutoffPolicy, richness: Optional[RichnessEstimate],
                         curves: CurveFitResult) -> Optional[float]:
    """Return the value selected by the policy, or None if it is unavailable."""
    policy = CutoffPolicy.from_string(policy)
    if policy is CutoffPolicy.ICHAO2:
        if richness is None or richness.ichao2 is None:
            return None
        return richness.ichao2.mean
    fit = curves.gompertz if policy is CutoffPolicy.GOMPERTZ else curves.asymptotic
    if fit is None:
        return None
    return fit.params['asym']


def cutoff_rank(value: Optional[float], n_species: int) -> Optional[int]:
    """Round a cutoff value to a 1-based rank; None when outside 1..n_species."""
    if value is None or not np.isfinite(value):
        return None
    rank = int(round(value))
    if rank < 1 or rank > n_species:
        return None
    return rank


def rank_species(target_beals: np.ndarray) -> np.ndarray:
    """Species positions by decreasing Beals value, ties in universe order."""
    return np.argsort(-np.asarray(target_beals, dtype=float), kind='stable')


def beals_at_cutoff(target_beals: np.ndarray, value: Optional[float]) -> Optional[float]:
    """Beals value of the target at the rank given by the cutoff value."""
    rank = cutoff_rank(value, len(target_beals))
    if rank is None:
        return None
    order = rank_species(target_beals)
    return float(target_beals[order[rank - 1]])


def extract_species_pool(target_beals: np.ndarray, species: Sequence[str],
                         value: Optional[float]) -> Optional[Tuple[str, ...]]:
    """The round(value) species with the highest Beals values for the target."""
    rank = cutoff_rank(value, len(target_beals))
    if rank is None:
        return None
    order = rank_species(target_beals)[:rank]
    return tuple(species[i] for i in order)
