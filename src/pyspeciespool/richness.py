"""
Incidence-based species richness estimators.

Implements the estimators reported for the sampled neighbourhood of a target
plot, from a binary sampling-unit x species incidence matrix with T units:

- Chao2 (Chao 1987):
      S_obs + (T-1)/T * Q1^2 / (2 Q2)               if Q2 > 0
      S_obs + (T-1)/T * Q1 (Q1 - 1) / 2             if Q2 = 0
- iChao2 (Chiu et al. 2014):
      Chao2 + (T-3)/(4T) * Q3/Q4 * max(Q1 - (T-3)/(2(T-1)) * Q2 Q3 / Q4, 0)
  with Q4 replaced by 1 when it is 0.
- First-order jackknife:  S_obs + Q1 (T-1)/T
- Second-order jackknife: S_obs + Q1 (2T-3)/T - Q2 (T-2)^2 / (T (T-1))

Qk is the number of species found in exactly k sampling units. Standard
errors use the delta method with the multinomial covariance of the Qk,
cov(Qi, Qi) = Qi (1 - Qi/S), cov(Qi, Qj) = -Qi Qj / S.

Estimates are never below S_obs. Degenerate input (fewer than two units, or
only singleton species for the Chao family) makes the estimate unavailable.
"""
from typing import Callable, Optional

import numpy as np

from .logging_config import get_logger
from .results import Estimate, RichnessEstimate

__all__ = [
    'incidence_frequencies',
    'chao2',
    'ichao2',
    'jackknife1',
    'jackknife2',
    'estimate_richness',
]

logger = get_logger(__name__)

# Frequency counts Q1..Q4 enter the estimators
N_FREQUENCIES = 4


def incidence_frequencies(incidence: np.ndarray) -> np.ndarray:
    """Return Q1..Q4 of a binary units x species matrix as floats."""
    counts = np.asarray(incidence, dtype=bool).sum(axis=0)
    return np.array([np.sum(counts == k) for k in range(1, N_FREQUENCIES + 1)], dtype=float)


def chao2(s_obs: float, q: np.ndarray, t: int) -> float:
    """Chao2 estimate from observed richness and frequency counts."""
    a = (t - 1) / t
    q1, q2 = q[0], q[1]
    if q2 > 0:
        return s_obs + a * q1 * q1 / (2.0 * q2)
    return s_obs + a * q1 * (q1 - 1.0) / 2.0


def ichao2(s_obs: float, q: np.ndarray, t: int) -> float:
    """iChao2 estimate; equals Chao2 when fewer than four units were sampled."""
    base = chao2(s_obs, q, t)
    if t <= 3:
        return base
    q1, q2, q3, q4 = q
    q4 = q4 if q4 > 0 else 1.0
    correction = (t - 3) / (4.0 * t) * q3 / q4 * max(q1 - (t - 3) / (2.0 * (t - 1)) * q2 * q3 / q4, 0.0)
    return base + correction


def jackknife1(s_obs: float, q: np.ndarray, t: int) -> float:
    """First-order jackknife estimate."""
    return s_obs + q[0] * (t - 1) / t


def jackknife2(s_obs: float, q: np.ndarray, t: int) -> float:
    """Second-order jackknife estimate."""
    return s_obs + q[0] * (2 * t - 3) / t - q[1] * (t - 2) ** 2 / (t * (t - 1))


def _delta_se(func: Callable[[float, np.ndarray, int], float], s_obs: float,
              q: np.ndarray, t: int, s_hat: float) -> Optional[float]:
    """Delta-method standard error of an estimator of the Qk."""
    active = np.flatnonzero(q > 0)
    if active.size == 0 or s_hat <= 0:
        return 0.0

    gradient = np.zeros(len(q))
    for k in active:
        step = 1e-6 * max(1.0, q[k])
        up = q.copy()
        down = q.copy()
        up[k] += step
        down[k] -= step
        # Changing Qk also changes S_obs by the same amount
        gradient[k] = (func(s_obs + step, up, t) - func(s_obs - step, down, t)) / (2.0 * step)

    cov = -np.outer(q, q) / s_hat
    np.fill_diagonal(cov, q * (1.0 - q / s_hat))
    variance = float(gradient @ cov @ gradient)
    if not np.isfinite(variance):
        return None
    return float(np.sqrt(max(variance, 0.0)))


def _estimate(func, s_obs: float, q: np.ndarray, t: int) -> Optional[Estimate]:
    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        mean = func(s_obs, q, t)
        if not np.isfinite(mean):
            logger.debug("%s estimate not finite", func.__name__)
            return None
        mean = max(float(mean), float(s_obs))
        se = _delta_se(func, s_obs, q, t, mean)
    return Estimate(mean=mean, se=se)


def estimate_richness(incidence: np.ndarray) -> RichnessEstimate:
    """Estimate richness of a units x species incidence matrix.

    Species columns with no presence are ignored. An estimator that cannot
    be computed for this input is reported as None.

    Args:
        incidence: Binary matrix, one row per sampled plot

    Returns:
        RichnessEstimate with observed richness and the four estimates
    """
    incidence = np.atleast_2d(np.asarray(incidence, dtype=bool))
    incidence = incidence[:, incidence.any(axis=0)]
    t = incidence.shape[0]
    s_obs = incidence.shape[1]

    if t < 2 or s_obs == 0:
        logger.debug("Richness estimation unavailable: %d sampling units, %d species", t, s_obs)
        return RichnessEstimate(observed=s_obs)

    q = incidence_frequencies(incidence)
    # Only singletons: the Chao estimators have no doubletons to anchor the tail
    only_singletons = q[0] == s_obs
    return RichnessEstimate(
        observed=s_obs,
        chao2=None if only_singletons else _estimate(chao2, s_obs, q, t),
        ichao2=None if only_singletons else _estimate(ichao2, s_obs, q, t),
        jack1=_estimate(jackknife1, s_obs, q, t),
        jack2=_estimate(jackknife2, s_obs, q, t),
    )
