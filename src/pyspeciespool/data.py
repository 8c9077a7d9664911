"""
Validated survey data shared read-only by all target computations.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd
from scipy import sparse

from .cooccurrence import CooccurrenceMatrix, presence_matrix
from .logging_config import get_logger
from .validation import InputValidator

__all__ = ['SurveyData', 'prepare_survey_data']

logger = get_logger(__name__)


@dataclass(frozen=True)
class SurveyData:
    """Plot table, species universe and presence data of one run.

    Row i of every per-plot array refers to row i of the plot table, so
    target indices are plain row numbers.

    Attributes:
        plot_ids: Plot identifiers
        x: First coordinate (longitude when geodesic)
        y: Second coordinate (latitude when geodesic)
        area: Plot area, NaN when unknown
        geodesic: Whether coordinates are longitude/latitude degrees
        presence: Sparse binary plots x species matrix over the full universe
        cooccurrence: Co-occurrence matrix in the same species order
    """
    plot_ids: np.ndarray
    x: np.ndarray
    y: np.ndarray
    area: np.ndarray
    geodesic: bool
    presence: sparse.csr_matrix
    cooccurrence: CooccurrenceMatrix

    @property
    def n_plots(self) -> int:
        return len(self.plot_ids)

    @property
    def species(self) -> Tuple[str, ...]:
        return self.cooccurrence.species

    @property
    def n_species(self) -> int:
        return self.cooccurrence.n_species

    def dense_presence(self, rows: np.ndarray) -> np.ndarray:
        """Dense binary presence of the given plots over the full species universe."""
        return self.presence[rows].toarray().astype(np.int8)


def prepare_survey_data(
    species_table: pd.DataFrame,
    plot_table: pd.DataFrame,
    geodesic: bool,
    cooccurrence: Optional[pd.DataFrame] = None,
) -> SurveyData:
    """Validate the input tables and assemble a SurveyData.

    Args:
        species_table: Columns (plot id, species id, abundance)
        plot_table: Columns (x, y, plot id, area)
        geodesic: True when x/y are longitude/latitude degrees
        cooccurrence: Optional species x species matrix; computed from the
            species table when omitted

    Raises:
        SpeciesPoolError: Any eager validation failure
    """
    species = InputValidator.validate_species_table(species_table)
    plots = InputValidator.validate_plot_table(plot_table)
    if geodesic:
        InputValidator.check_geographic_range(plots)
    species = InputValidator.reconcile_plots(species, plots)
    plot_ids = plots['plot_id'].to_numpy(dtype=object)

    if cooccurrence is None:
        universe = sorted(species['species_id'].unique())
        presence = presence_matrix(species, plot_ids, universe)
        matrix = CooccurrenceMatrix.from_presence(presence, universe)
        logger.info("Co-occurrence matrix not specified - calculated it for %d species",
                    len(universe))
    else:
        frame = InputValidator.validate_cooccurrence(cooccurrence, species['species_id'].unique())
        matrix = CooccurrenceMatrix.from_frame(frame)
        presence = presence_matrix(species, plot_ids, matrix.species)

    logger.info("Prepared %d plots over a universe of %d species",
                len(plot_ids), matrix.n_species)
    return SurveyData(
        plot_ids=plot_ids,
        x=plots['x'].to_numpy(dtype=float),
        y=plots['y'].to_numpy(dtype=float),
        area=plots['area'].to_numpy(dtype=float),
        geodesic=bool(geodesic),
        presence=presence,
        cooccurrence=matrix,
    )
