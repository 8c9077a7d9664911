"""
Species-area accumulation and nonlinear curve fitting.

The accumulation curve pools the sampled plots in random order: for each of
``permutations`` orderings the cumulative area and cumulative richness after
1, 2, ..., n plots are recorded, and both sequences are averaged over the
orderings.

Four models are fitted independently by nonlinear least squares
(scipy.optimize.curve_fit):

- Arrhenius (power law):  S = k * A^z
- Gompertz:               S = Asym * exp(-exp((b2 - A) / b3))
- Michaelis-Menten:       S = Vm * A / (K + A)
- Asymptotic regression:  S = Asym - (Asym - R0) * exp(-exp(lrc) * A)

A model that fails to converge is unavailable without affecting the others.
AIC follows the Gaussian log-likelihood of the residuals with the residual
variance counted as a parameter:

    AIC = n (log(2 pi) + 1 + log(RSS / n)) + 2 (p + 1)
"""
import time
import warnings
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import numpy as np
from scipy.optimize import OptimizeWarning, curve_fit

from .logging_config import get_logger
from .results import CURVE_MODELS, CurveFitResult, ModelFit

__all__ = [
    'AccumulationCurve',
    'FitTimeout',
    'accumulate_species_area',
    'arrhenius',
    'gompertz',
    'michaelis_menten',
    'asymptotic',
    'fit_model',
    'fit_species_area_models',
    'predict',
]

logger = get_logger(__name__)

# Maximum function evaluations per fit
MAX_EVALUATIONS = 10000

_FIT_ERRORS = (RuntimeError, ValueError, TypeError, np.linalg.LinAlgError, FloatingPointError)


class FitTimeout(Exception):
    """Raised inside a model evaluation once the curve stage deadline has passed."""
    pass


@dataclass(frozen=True)
class AccumulationCurve:
    """Mean cumulative area and richness after 1..n pooled plots."""
    area: np.ndarray
    richness: np.ndarray

    def __len__(self) -> int:
        return len(self.area)


def accumulate_species_area(
    incidence: np.ndarray,
    areas: np.ndarray,
    permutations: int,
    rng: np.random.Generator,
) -> AccumulationCurve:
    """Average species accumulation over random plot orderings.

    Args:
        incidence: Binary plots x species matrix
        areas: Area of each plot, same order as ``incidence`` rows
        permutations: Number of random orderings
        rng: Random stream of the target

    Returns:
        AccumulationCurve with one point per pooled plot
    """
    incidence = np.asarray(incidence, dtype=bool)
    areas = np.asarray(areas, dtype=float)
    n = incidence.shape[0]

    area_sum = np.zeros(n)
    richness_sum = np.zeros(n)
    for _ in range(permutations):
        order = rng.permutation(n)
        area_sum += np.cumsum(areas[order])
        richness_sum += np.logical_or.accumulate(incidence[order], axis=0).sum(axis=1)

    return AccumulationCurve(area=area_sum / permutations,
                             richness=richness_sum / permutations)


# =============================================================================
# Model functions
# =============================================================================

def arrhenius(x, k, z):
    return k * np.power(x, z)


def gompertz(x, asym, b2, b3):
    return asym * np.exp(-np.exp((b2 - x) / b3))


def michaelis_menten(x, vm, k):
    return vm * x / (k + x)


def asymptotic(x, asym, r0, lrc):
    return asym - (asym - r0) * np.exp(-np.exp(lrc) * x)


# =============================================================================
# Starting values
# =============================================================================

def _start_arrhenius(x: np.ndarray, y: np.ndarray) -> Tuple[float, ...]:
    positive = (x > 0) & (y > 0)
    if positive.sum() >= 2:
        z, log_k = np.polyfit(np.log(x[positive]), np.log(y[positive]), 1)
        return float(np.exp(log_k)), float(z)
    return float(np.max(y)), 0.25


def _start_gompertz(x: np.ndarray, y: np.ndarray) -> Tuple[float, ...]:
    asym = float(np.max(y)) * 1.05
    # With b2 = 0 the model linearizes to -log(-log(y / Asym)) = x / b3
    ratio = np.clip(y / asym, 1e-9, 1.0 - 1e-9)
    z = -np.log(-np.log(ratio))
    slope = float(np.sum(x * z) / np.sum(x * x)) if np.sum(x * x) > 0 else 0.0
    b3 = 1.0 / slope if slope > 0 else float(np.mean(x))
    return asym, 0.0, b3


def _start_michaelis_menten(x: np.ndarray, y: np.ndarray) -> Tuple[float, ...]:
    positive = (x > 0) & (y > 0)
    if positive.sum() >= 2:
        slope, intercept = np.polyfit(1.0 / x[positive], 1.0 / y[positive], 1)
        if intercept > 0 and slope > 0:
            vm = 1.0 / intercept
            return float(vm), float(slope * vm)
    return float(np.max(y)) * 1.5, float(np.median(x))


def _start_asymptotic(x: np.ndarray, y: np.ndarray) -> Tuple[float, ...]:
    spread = float(np.max(y) - np.min(y))
    asym = float(np.max(y)) + max(0.05 * spread, 1e-3)
    slope, intercept = np.polyfit(x, np.log(asym - y), 1)
    lrc = float(np.log(-slope)) if slope < 0 else float(np.log(1.0 / np.mean(x)))
    r0 = asym - float(np.exp(intercept))
    return asym, r0, lrc


_MODELS: Dict[str, Tuple[Callable, Callable]] = {
    'arrhenius': (arrhenius, _start_arrhenius),
    'gompertz': (gompertz, _start_gompertz),
    'michaelis_menten': (michaelis_menten, _start_michaelis_menten),
    'asymptotic': (asymptotic, _start_asymptotic),
}


def _aic(rss: float, n: int, n_params: int) -> float:
    return n * (np.log(2.0 * np.pi) + 1.0 + np.log(rss / n)) + 2.0 * (n_params + 1)


def _with_deadline(func: Callable, deadline: Optional[float]) -> Callable:
    if deadline is None:
        return func

    def guarded(x, *params):
        if time.monotonic() > deadline:
            raise FitTimeout()
        return func(x, *params)

    return guarded


def fit_model(name: str, area: np.ndarray, richness: np.ndarray,
              deadline: Optional[float] = None) -> Optional[ModelFit]:
    """Fit one species-area model.

    Args:
        name: One of 'arrhenius', 'gompertz', 'michaelis_menten', 'asymptotic'
        area: Cumulative area
        richness: Cumulative richness
        deadline: time.monotonic() value after which the fit is abandoned

    Returns:
        ModelFit, or None if the fit did not converge

    Raises:
        FitTimeout: If the deadline passed during the fit
    """
    func, start = _MODELS[name]
    param_names = CURVE_MODELS[name][1]
    x = np.asarray(area, dtype=float)
    y = np.asarray(richness, dtype=float)

    with warnings.catch_warnings(), np.errstate(all='ignore'):
        warnings.simplefilter('ignore', OptimizeWarning)
        try:
            p0 = start(x, y)
            popt, pcov = curve_fit(_with_deadline(func, deadline), x, y,
                                   p0=p0, maxfev=MAX_EVALUATIONS)
        except _FIT_ERRORS as e:
            logger.debug("%s fit did not converge: %s", name, e)
            return None

        residuals = y - func(x, *popt)
        rss = float(np.sum(residuals ** 2))

    # A singular gradient leaves the covariance undefined
    if not np.all(np.isfinite(popt)) or not np.all(np.isfinite(pcov)) or not rss > 0:
        logger.debug("%s fit rejected: singular or degenerate solution", name)
        return None

    aic = float(_aic(rss, len(x), len(popt)))
    if not np.isfinite(aic):
        return None
    return ModelFit(model=name, params=dict(zip(param_names, map(float, popt))),
                    aic=aic, rss=rss)


def fit_species_area_models(curve: AccumulationCurve,
                            timeout: Optional[float] = None) -> CurveFitResult:
    """Fit all four models to an accumulation curve.

    The timeout bounds the whole stage. When it expires, the model being
    fitted and all later ones are unavailable and ``timed_out`` is set.

    Args:
        curve: Accumulation curve
        timeout: Seconds available for the four fits, None for no bound
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    fits: Dict[str, Optional[ModelFit]] = {}
    timed_out = False
    for name in CURVE_MODELS:
        if timed_out:
            fits[name] = None
            continue
        try:
            fits[name] = fit_model(name, curve.area, curve.richness, deadline)
        except FitTimeout:
            logger.debug("Curve stage timed out during %s fit", name)
            fits[name] = None
            timed_out = True
    return CurveFitResult(timed_out=timed_out, **fits)


def predict(fit: ModelFit, area: np.ndarray) -> np.ndarray:
    """Evaluate a fitted model at the given areas."""
    func = _MODELS[fit.model][0]
    param_names = CURVE_MODELS[fit.model][1]
    return func(np.asarray(area, dtype=float), *(fit.params[p] for p in param_names))
