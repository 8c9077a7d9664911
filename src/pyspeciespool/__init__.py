"""
PySpeciesPool: regional species pool estimation for vegetation plots

For each target plot, the plots within a radius are smoothed with the Beals
index, filtered to those compositionally similar to the target, and used to
estimate richness (Chao2, iChao2, first- and second-order jackknife) and to
fit species-area curves. The Beals value at the estimated pool size is the
inclusion threshold of the target's species pool.

Quick Start:
    >>> from pyspeciespool import species_pool
    >>> table = species_pool(species_df, plots_df, geodesic=True,
    ...                      radius=20000, bray_threshold=0.2, min_plots=10)
    >>> table[['plot_id', 'ichao2', 'beals_at_cutoff']]

Plotting helpers live in ``pyspeciespool.curve_plots`` and are not imported
here so that the package does not require a display backend.
"""

# =============================================================================
# Package Metadata
# =============================================================================
__version__ = "0.1.0"
__author__ = "PySpeciesPool Development Team"

# =============================================================================
# Core API
# =============================================================================
from .pipeline import SpeciesPoolEstimator, estimate_target, species_pool, target_rng
from .data import SurveyData, prepare_survey_data

# =============================================================================
# Parameters and Configuration
# =============================================================================
from .parameters import CutoffPolicy, PoolParameters, WorkerPoolConfig
from .config_loader import (
    ConfigLoader,
    get_config_loader,
    load_parameters,
    save_parameters,
)

# =============================================================================
# Stages
# =============================================================================
from .cooccurrence import CooccurrenceMatrix, build_cooccurrence_matrix, presence_matrix
from .geometry import GeodesicGeometry, GeometryProvider, PlanarGeometry, get_geometry
from .neighbors import select_neighbors, subsample_neighbors
from .beals import beals_smoothing, bray_curtis, similarity_mask
from .richness import chao2, estimate_richness, ichao2, jackknife1, jackknife2
from .species_area import (
    AccumulationCurve,
    FitTimeout,
    accumulate_species_area,
    fit_model,
    fit_species_area_models,
    predict,
)
from .cutoff import beals_at_cutoff, extract_species_pool, resolve_cutoff_value

# =============================================================================
# Results
# =============================================================================
from .results import (
    RESULT_COLUMNS,
    CurveFitResult,
    Estimate,
    ModelFit,
    ResultRecord,
    RichnessEstimate,
    TargetOutcome,
    results_to_frame,
)

# =============================================================================
# Logging
# =============================================================================
from .logging_config import get_logger, setup_logging

# =============================================================================
# Exceptions
# =============================================================================
from .exceptions import (
    SpeciesPoolError,
    ConfigurationError,
    ParameterError,
    InvalidParameterError,
    DataError,
    InvalidDataError,
    EmptyPlotError,
    SpeciesMismatchError,
)

__all__ = [
    # Metadata
    "__version__",
    # Core API
    "species_pool",
    "SpeciesPoolEstimator",
    "estimate_target",
    "target_rng",
    "SurveyData",
    "prepare_survey_data",
    # Parameters and Configuration
    "CutoffPolicy",
    "PoolParameters",
    "WorkerPoolConfig",
    "ConfigLoader",
    "get_config_loader",
    "load_parameters",
    "save_parameters",
    # Stages
    "CooccurrenceMatrix",
    "build_cooccurrence_matrix",
    "presence_matrix",
    "GeometryProvider",
    "PlanarGeometry",
    "GeodesicGeometry",
    "get_geometry",
    "select_neighbors",
    "subsample_neighbors",
    "beals_smoothing",
    "bray_curtis",
    "similarity_mask",
    "estimate_richness",
    "chao2",
    "ichao2",
    "jackknife1",
    "jackknife2",
    "AccumulationCurve",
    "FitTimeout",
    "accumulate_species_area",
    "fit_model",
    "fit_species_area_models",
    "predict",
    "resolve_cutoff_value",
    "beals_at_cutoff",
    "extract_species_pool",
    # Results
    "TargetOutcome",
    "Estimate",
    "RichnessEstimate",
    "ModelFit",
    "CurveFitResult",
    "ResultRecord",
    "RESULT_COLUMNS",
    "results_to_frame",
    # Logging
    "setup_logging",
    "get_logger",
    # Exceptions
    "SpeciesPoolError",
    "ConfigurationError",
    "ParameterError",
    "InvalidParameterError",
    "DataError",
    "InvalidDataError",
    "EmptyPlotError",
    "SpeciesMismatchError",
]
