"""
Species pool estimation pipeline.

For each target plot:

1. select the plots within the radius disc,
2. compute Beals smoothing over that neighbourhood,
3. keep the plots whose Beals profile is similar to the target's,
4. subsample the kept plots to at most twice the minimum plot count,
5. estimate richness from the sampled plots,
6. fit species-area curves on sampled plots with known area,
7. derive the Beals cutoff and, optionally, the ranked species pool.

Targets are independent. A batch runs sequentially or on a worker pool that
lives only for the duration of the call; records are re-joined by plot id.

Usage:
    >>> from pyspeciespool import species_pool
    >>> table = species_pool(species_df, plots_df, geodesic=True,
    ...                      radius=20000, bray_threshold=0.2, min_plots=10)
"""
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .beals import beals_smoothing, similarity_mask
from .cutoff import beals_at_cutoff, extract_species_pool, resolve_cutoff_value
from .data import SurveyData, prepare_survey_data
from .exceptions import InvalidParameterError
from .geometry import GeometryProvider
from .logging_config import get_logger, log_target_summary
from .neighbors import select_neighbors, subsample_neighbors
from .parameters import PoolParameters, WorkerPoolConfig
from .results import CurveFitResult, ResultRecord, TargetOutcome, results_to_frame
from .richness import estimate_richness
from .species_area import accumulate_species_area, fit_species_area_models
from .validation import InputValidator

__all__ = [
    'estimate_target',
    'target_rng',
    'SpeciesPoolEstimator',
    'species_pool',
]

logger = get_logger(__name__)


def target_rng(entropy: int, target: int) -> np.random.Generator:
    """Independent random stream of one target, reproducible from the batch entropy."""
    return np.random.default_rng(np.random.SeedSequence(entropy, spawn_key=(int(target),)))


def estimate_target(
    data: SurveyData,
    target: int,
    params: PoolParameters,
    rng: np.random.Generator,
    geometry: Optional[GeometryProvider] = None,
) -> ResultRecord:
    """Run the full pipeline for one target plot.

    Args:
        data: Shared survey data
        target: Row index of the target plot
        params: Run parameters
        rng: Random stream used by subsampling and accumulation
        geometry: Geometry provider; chosen from ``data.geodesic`` when omitted

    Returns:
        The target's ResultRecord
    """
    plot_id = str(data.plot_ids[target])
    outcomes: List[TargetOutcome] = []

    rows = select_neighbors(data, target, params.radius, geometry)
    n_radius = len(rows)
    if n_radius < params.min_plots:
        outcomes.append(TargetOutcome.INSUFFICIENT_NEIGHBORS)
        log_target_summary(logger, plot_id, n_radius, 0, [o.value for o in outcomes])
        return ResultRecord(plot_id=plot_id, n_plots_radius=n_radius, n_plots=0,
                            outcomes=tuple(outcomes))

    presence = data.dense_presence(rows)
    target_pos = int(np.searchsorted(rows, target))
    cooccurrence = data.cooccurrence.excluding(presence[target_pos])
    beals = beals_smoothing(presence, cooccurrence)

    filtered = rows[similarity_mask(beals, target_pos, params.bray_threshold)]
    n_filtered = len(filtered)
    if n_filtered < params.min_plots:
        outcomes.append(TargetOutcome.INSUFFICIENT_FILTERED_NEIGHBORS)
        log_target_summary(logger, plot_id, n_radius, n_filtered, [o.value for o in outcomes])
        return ResultRecord(plot_id=plot_id, n_plots_radius=n_radius, n_plots=n_filtered,
                            outcomes=tuple(outcomes))

    sampled = subsample_neighbors(filtered, target, params.subsample_size, rng)
    incidence = presence[np.searchsorted(rows, sampled)]

    richness = estimate_richness(incidence)
    if richness.any_unavailable:
        outcomes.append(TargetOutcome.RICHNESS_UNAVAILABLE)

    areas = data.area[sampled]
    eligible = np.isfinite(areas) & (areas > 0)
    n_area = int(eligible.sum())
    if n_area >= params.min_plots:
        curve = accumulate_species_area(incidence[eligible], areas[eligible],
                                        params.permutations, rng)
        curves = fit_species_area_models(curve, params.fit_timeout)
        if curves.timed_out:
            outcomes.append(TargetOutcome.CURVE_FIT_TIMEOUT)
        if curves.any_unavailable:
            outcomes.append(TargetOutcome.CURVE_FIT_UNAVAILABLE)
    else:
        curves = CurveFitResult()
        outcomes.append(TargetOutcome.INSUFFICIENT_AREA_DATA)

    target_beals = beals[target_pos]
    cutoff_value = resolve_cutoff_value(params.cutoff, richness, curves)
    threshold = beals_at_cutoff(target_beals, cutoff_value)
    pool = None
    if threshold is None:
        outcomes.append(TargetOutcome.CUTOFF_UNAVAILABLE)
    elif params.species_list:
        pool = extract_species_pool(target_beals, data.species, cutoff_value)

    log_target_summary(logger, plot_id, n_radius, n_filtered, [o.value for o in outcomes])
    return ResultRecord(
        plot_id=plot_id,
        n_plots_radius=n_radius,
        n_plots=n_filtered,
        n_plots_sampled=len(sampled),
        richness=richness,
        beals_at_cutoff=threshold,
        cutoff_value=cutoff_value,
        n_plots_area=n_area,
        curves=curves,
        species_pool=pool,
        outcomes=tuple(outcomes),
    )


def _safe_estimate(data: SurveyData, target: int, params: PoolParameters,
                   entropy: int) -> ResultRecord:
    """estimate_target that turns an unexpected error into a FAILED record."""
    try:
        return estimate_target(data, target, params, target_rng(entropy, target))
    except Exception:
        logger.exception("Target %s failed", data.plot_ids[target])
        return ResultRecord(plot_id=str(data.plot_ids[target]), n_plots_radius=None,
                            n_plots=None, outcomes=(TargetOutcome.FAILED,))


# Read-only inputs of a process worker, set by the pool initializer
_worker_state: Optional[Tuple[SurveyData, PoolParameters, int]] = None


def _init_worker(data: SurveyData, params: PoolParameters, entropy: int) -> None:
    global _worker_state
    _worker_state = (data, params, entropy)


def _estimate_chunk(data: SurveyData, params: PoolParameters, entropy: int,
                    targets: Sequence[int]) -> List[ResultRecord]:
    return [_safe_estimate(data, target, params, entropy) for target in targets]


def _run_chunk(targets: Sequence[int]) -> List[ResultRecord]:
    return _estimate_chunk(*_worker_state, targets)


def _chunks(items: Sequence[int], size: int) -> Iterable[Sequence[int]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class SpeciesPoolEstimator:
    """Runs the species pool pipeline over a batch of target plots.

    Attributes:
        data: Validated survey data shared by all targets
        params: Run parameters
        pool: Worker pool layout used by each batch call
    """

    def __init__(self, data: SurveyData, params: PoolParameters,
                 pool: Optional[WorkerPoolConfig] = None):
        if params.geodesic != data.geodesic:
            raise InvalidParameterError("geodesic", params.geodesic,
                                        "does not match the coordinate type of the survey data")
        self.data = data
        self.params = params
        self.pool = pool or WorkerPoolConfig()

    def _entropy(self) -> int:
        if self.params.seed is not None:
            return int(self.params.seed)
        return int(np.random.SeedSequence().entropy)

    def _make_executor(self, entropy: int) -> Executor:
        if self.pool.kind == 'thread':
            return ThreadPoolExecutor(max_workers=self.pool.workers)
        return ProcessPoolExecutor(max_workers=self.pool.workers, initializer=_init_worker,
                                   initargs=(self.data, self.params, entropy))

    def estimate(self, targets: Optional[Sequence[int]] = None) -> List[ResultRecord]:
        """Compute one ResultRecord per target.

        Records of a parallel run come back in completion order.

        Args:
            targets: Row indices of the plot table; all plots when omitted

        Returns:
            List of ResultRecord
        """
        if targets is None:
            targets = range(self.data.n_plots)
        indices = InputValidator.validate_targets(targets, self.data.n_plots).tolist()
        entropy = self._entropy()
        logger.info("Start species pool estimation for %d target plots (%d worker(s))",
                    len(indices), self.pool.workers)

        if not self.pool.is_parallel or len(indices) <= 1:
            records = [_safe_estimate(self.data, target, self.params, entropy)
                       for target in indices]
        else:
            records = self._estimate_parallel(indices, entropy)

        failed = sum(TargetOutcome.FAILED in record.outcomes for record in records)
        logger.info("Finished %d target plots (%d failed)", len(records), failed)
        return records

    def _estimate_parallel(self, indices: List[int], entropy: int) -> List[ResultRecord]:
        records: List[ResultRecord] = []
        with self._make_executor(entropy) as executor:
            if self.pool.kind == "thread":
                futures = [executor.submit(_estimate_chunk, self.data, self.params, entropy, chunk)
                           for chunk in _chunks(indices, self.pool.chunksize)]
            else:
                futures = [executor.submit(_run_chunk, chunk)
                           for chunk in _chunks(indices, self.pool.chunksize)]
            for future in as_completed(futures):
                records.extend(future.result())
        return records

    def run(self, targets: Optional[Sequence[int]] = None) -> pd.DataFrame:
        """Compute the output table, one row per target in target order."""
        if targets is None:
            targets = range(self.data.n_plots)
        targets = list(targets)
        records = self.estimate(targets)
        order = [str(self.data.plot_ids[t]) for t in targets]
        return results_to_frame(records, species_list=self.params.species_list, order=order)


def species_pool(
    species_table: pd.DataFrame,
    plot_table: pd.DataFrame,
    cooccurrence: Optional[pd.DataFrame] = None,
    *,
    geodesic: bool,
    targets: Optional[Sequence[int]] = None,
    workers: int = 1,
    worker_kind: str = 'process',
    **parameters,
) -> pd.DataFrame:
    """Estimate the species pool of each target plot.

    Args:
        species_table: Columns (plot id, species id, abundance)
        plot_table: Columns (x, y, plot id, area)
        cooccurrence: Optional species x species co-occurrence matrix
        geodesic: True when coordinates are longitude/latitude degrees
        targets: Row indices of the plot table; all plots when omitted
        workers: Number of workers; 1 runs sequentially
        worker_kind: "process" or "thread"
        **parameters: Further PoolParameters fields (radius, bray_threshold,
            min_plots, cutoff, species_list, permutations, fit_timeout, seed)

    Returns:
        Output table with one row per target plot
    """
    params = PoolParameters(geodesic=geodesic, **parameters)
    pool = WorkerPoolConfig(workers=workers, kind=worker_kind)
    data = prepare_survey_data(species_table, plot_table, geodesic, cooccurrence)
    return SpeciesPoolEstimator(data, params, pool).run(targets)
