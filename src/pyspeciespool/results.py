"""
Result types of the species pool pipeline.

Every stage reports unavailable values as None; they become NA in the output
table. Records are frozen and built once per target plot.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

__all__ = [
    'TargetOutcome',
    'Estimate',
    'RichnessEstimate',
    'ModelFit',
    'CurveFitResult',
    'ResultRecord',
    'CURVE_MODELS',
    'RESULT_COLUMNS',
    'results_to_frame',
]


class TargetOutcome(str, Enum):
    """Non-fatal conditions met while processing one target plot."""

    INSUFFICIENT_NEIGHBORS = "insufficient_neighbors"
    INSUFFICIENT_FILTERED_NEIGHBORS = "insufficient_filtered_neighbors"
    RICHNESS_UNAVAILABLE = "richness_unavailable"
    INSUFFICIENT_AREA_DATA = "insufficient_area_data"
    CURVE_FIT_UNAVAILABLE = "curve_fit_unavailable"
    CURVE_FIT_TIMEOUT = "curve_fit_timeout"
    CUTOFF_UNAVAILABLE = "cutoff_unavailable"
    FAILED = "failed"


@dataclass(frozen=True)
class Estimate:
    """Point estimate with standard error; se is None when it cannot be computed."""
    mean: float
    se: Optional[float] = None


@dataclass(frozen=True)
class RichnessEstimate:
    """Observed and extrapolated richness of a set of sampled plots."""
    observed: int
    chao2: Optional[Estimate] = None
    ichao2: Optional[Estimate] = None
    jack1: Optional[Estimate] = None
    jack2: Optional[Estimate] = None

    def estimates(self) -> Dict[str, Optional[Estimate]]:
        return {
            'chao': self.chao2,
            'ichao2': self.ichao2,
            'jack1': self.jack1,
            'jack2': self.jack2,
        }

    @property
    def any_unavailable(self) -> bool:
        return any(value is None for value in self.estimates().values())


# Model name -> (column prefix, parameter names in output order)
CURVE_MODELS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    'arrhenius': ('arr', ('k', 'z')),
    'gompertz': ('gomp', ('asym', 'b2', 'b3')),
    'michaelis_menten': ('mm', ('vm', 'k')),
    'asymptotic': ('asymp', ('asym', 'r0', 'lrc')),
}


@dataclass(frozen=True)
class ModelFit:
    """Converged fit of one species-area model."""
    model: str
    params: Dict[str, float]
    aic: float
    rss: float = float('nan')


@dataclass(frozen=True)
class CurveFitResult:
    """Fits of the four species-area models; None where a fit is unavailable."""
    arrhenius: Optional[ModelFit] = None
    gompertz: Optional[ModelFit] = None
    michaelis_menten: Optional[ModelFit] = None
    asymptotic: Optional[ModelFit] = None
    timed_out: bool = False

    def fits(self) -> Dict[str, Optional[ModelFit]]:
        return {name: getattr(self, name) for name in CURVE_MODELS}

    @property
    def any_unavailable(self) -> bool:
        return any(fit is None for fit in self.fits().values())


@dataclass(frozen=True)
class ResultRecord:
    """Everything computed for one target plot.

    Attributes:
        plot_id: Identifier of the target plot
        n_plots_radius: Plots within the radius, target included; None when the
            target failed before the radius stage finished
        n_plots: Plots kept by the similarity filter; 0 when the radius stage
            failed, None when the target failed unexpectedly
        n_plots_sampled: Plots kept after subsampling
        richness: Richness estimates of the sampled plots
        beals_at_cutoff: Beals value of the target at the cutoff rank
        cutoff_value: Value selected by the cutoff policy
        n_plots_area: Sampled plots with known positive area, when the curve stage ran
        curves: Species-area model fits
        species_pool: Ranked species ids of the pool, when requested and available
        outcomes: Non-fatal conditions met on the way
    """
    plot_id: str
    n_plots_radius: Optional[int] = None
    n_plots: Optional[int] = None
    n_plots_sampled: Optional[int] = None
    richness: Optional[RichnessEstimate] = None
    beals_at_cutoff: Optional[float] = None
    cutoff_value: Optional[float] = None
    n_plots_area: Optional[int] = None
    curves: CurveFitResult = field(default_factory=CurveFitResult)
    species_pool: Optional[Tuple[str, ...]] = None
    outcomes: Tuple[TargetOutcome, ...] = ()

    @property
    def observed(self) -> Optional[int]:
        return None if self.richness is None else self.richness.observed

    def to_dict(self, species_list: bool = False) -> Dict[str, object]:
        """Flatten the record into output-table columns."""
        row: Dict[str, object] = {
            'plot_id': self.plot_id,
            'species': self.observed,
        }
        estimates = self.richness.estimates() if self.richness is not None else {}
        for name in ('chao', 'ichao2', 'jack1', 'jack2'):
            estimate = estimates.get(name)
            row[name] = None if estimate is None else estimate.mean
            row[f'{name}_se'] = None if estimate is None else estimate.se
        row.update({
            'n_plots_radius': self.n_plots_radius,
            'n_plots': self.n_plots,
            'n_plots_sampled': self.n_plots_sampled,
            'beals_at_cutoff': self.beals_at_cutoff,
            'cutoff_value': self.cutoff_value,
            'n_plots_area': self.n_plots_area,
        })
        for name, fit in self.curves.fits().items():
            prefix, params = CURVE_MODELS[name]
            for param in params:
                row[f'{prefix}_{param}'] = None if fit is None else fit.params[param]
            row[f'{prefix}_aic'] = None if fit is None else fit.aic
        row['outcomes'] = ';'.join(outcome.value for outcome in self.outcomes)
        if species_list:
            row['sp_pool_list'] = None if self.species_pool is None else list(self.species_pool)
        return row


def _result_columns() -> List[str]:
    columns = ['plot_id', 'species']
    for name in ('chao', 'ichao2', 'jack1', 'jack2'):
        columns += [name, f'{name}_se']
    columns += ['n_plots_radius', 'n_plots', 'n_plots_sampled',
                'beals_at_cutoff', 'cutoff_value', 'n_plots_area']
    for prefix, params in CURVE_MODELS.values():
        columns += [f'{prefix}_{param}' for param in params] + [f'{prefix}_aic']
    columns.append('outcomes')
    return columns


RESULT_COLUMNS: List[str] = _result_columns()
_COUNT_COLUMNS = ('species', 'n_plots_radius', 'n_plots', 'n_plots_sampled', 'n_plots_area')


def results_to_frame(records: Iterable[ResultRecord], species_list: bool = False,
                     order: Optional[Iterable[str]] = None) -> pd.DataFrame:
    """Build the output table, one row per record.

    Counts use the nullable Int64 dtype and unavailable values are NA,
    never a numeric sentinel.

    Args:
        records: Result records
        species_list: Include the sp_pool_list column
        order: Plot ids giving the row order; records are re-joined by plot id
    """
    columns = RESULT_COLUMNS + (['sp_pool_list'] if species_list else [])
    rows = [record.to_dict(species_list) for record in records]
    frame = pd.DataFrame(rows, columns=columns)

    for column in columns:
        if column in ('plot_id', 'outcomes', 'sp_pool_list'):
            continue
        if column in _COUNT_COLUMNS:
            frame[column] = pd.to_numeric(frame[column], errors="coerce").astype("Int64")
        else:
            frame[column] = pd.to_numeric(frame[column], errors='coerce').astype(float)
    frame['plot_id'] = frame['plot_id'].astype(object)

    if order is not None and len(frame):
        position = {plot_id: i for i, plot_id in enumerate(order)}
        frame['_order'] = frame['plot_id'].map(position)
        frame = frame.sort_values('_order', kind='stable').drop(columns='_order')
    return frame.reset_index(drop=True)
