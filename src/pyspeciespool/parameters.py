"""
Run parameters for species pool estimation.

This module provides a CutoffPolicy enum that inherits from (str, Enum) so it
can be passed wherever the plain policy names are expected, and two frozen
dataclasses holding the thresholds of a run and the worker pool layout.

Usage:
    from pyspeciespool.parameters import PoolParameters, CutoffPolicy

    params = PoolParameters(radius=20000, geodesic=True,
                            cutoff=CutoffPolicy.GOMPERTZ)
"""
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Optional, Union

from .exceptions import (
    ConfigurationError,
    InvalidParameterError,
    validate_positive,
    validate_positive_int,
    validate_proportion,
)


class CutoffPolicy(str, Enum):
    """Which estimate sets the size of the species pool.

    ICHAO2 takes the iChao2 richness estimate, GOMPERTZ and ASYMPTOTIC take
    the asymptote parameter of the corresponding species-area model.
    """

    ICHAO2 = "iChao2"
    GOMPERTZ = "Gompertz"
    ASYMPTOTIC = "Asymptotic"

    @classmethod
    def from_string(cls, value: Union[str, "CutoffPolicy"]) -> "CutoffPolicy":
        """Convert a policy name to a CutoffPolicy.

        Matching is case-insensitive. "Michaelis" is accepted for backwards
        compatibility and resolves to ASYMPTOTIC.

        Raises:
            ConfigurationError: If the name is not a supported policy
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if member.value.lower() == key or member.name.lower() == key:
                    return member
            if key in _POLICY_ALIASES:
                return _POLICY_ALIASES[key]
        raise ConfigurationError(
            f"Unsupported cutoff policy {value!r}. "
            f"Valid cutoffs include: {', '.join(m.value for m in cls)}"
        )


_POLICY_ALIASES = {
    "michaelis": CutoffPolicy.ASYMPTOTIC,
    "asymp": CutoffPolicy.ASYMPTOTIC,
    "gomp": CutoffPolicy.GOMPERTZ,
}


@dataclass(frozen=True)
class PoolParameters:
    """Thresholds and switches of a species pool run.

    Attributes:
        geodesic: True if coordinates are longitude/latitude degrees and the
            radius is in metres; False for projected coordinates
        radius: Radius of the neighbourhood disc, in CRS units (metres when geodesic)
        bray_threshold: Neighbours with Bray-Curtis dissimilarity strictly below
            this value are kept
        min_plots: Minimum number of plots required at each stage
        cutoff: Policy selecting the species pool size
        species_list: Whether to return the ranked species pool list
        permutations: Random plot orderings averaged for the accumulation curve
        fit_timeout: Wall-clock bound in seconds for the curve stage of one
            target, None for no bound
        seed: Seed of the per-target random streams, None for fresh entropy
    """
    geodesic: bool
    radius: float = 20000.0
    bray_threshold: float = 0.2
    min_plots: int = 10
    cutoff: CutoffPolicy = CutoffPolicy.ICHAO2
    species_list: bool = False
    permutations: int = 99
    fit_timeout: Optional[float] = 30.0
    seed: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.geodesic, bool):
            raise InvalidParameterError(
                "geodesic", self.geodesic,
                "specify whether coordinates are unprojected (True) or projected (False)",
            )
        validate_positive(self.radius, "radius")
        validate_proportion(self.bray_threshold, "bray_threshold")
        object.__setattr__(self, "min_plots", validate_positive_int(self.min_plots, "min_plots"))
        object.__setattr__(self, "cutoff", CutoffPolicy.from_string(self.cutoff))
        object.__setattr__(self, "permutations",
                           validate_positive_int(self.permutations, "permutations"))
        if self.fit_timeout is not None:
            validate_positive(self.fit_timeout, "fit_timeout")
        if self.seed is not None and (isinstance(self.seed, bool) or self.seed < 0):
            raise InvalidParameterError("seed", self.seed, "must be a non-negative integer")

    @property
    def subsample_size(self) -> int:
        """Number of plots kept when the filtered set is large."""
        return 2 * self.min_plots

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary, with the policy as its name."""
        data = asdict(self)
        data["cutoff"] = self.cutoff.value
        return data


@dataclass(frozen=True)
class WorkerPoolConfig:
    """Layout of the worker pool used for one batch call.

    Attributes:
        workers: Number of workers; 1 runs targets sequentially in-process
        kind: "process" or "thread"
        chunksize: Targets handed to a process worker per task
    """
    workers: int = 1
    kind: str = "process"
    chunksize: int = field(default=1)

    def __post_init__(self):
        object.__setattr__(self, "workers", validate_positive_int(self.workers, "workers"))
        object.__setattr__(self, "chunksize", validate_positive_int(self.chunksize, "chunksize"))
        if self.kind not in ("process", "thread"):
            raise InvalidParameterError("kind", self.kind, "must be 'process' or 'thread'")

    @property
    def is_parallel(self) -> bool:
        return self.workers > 1
