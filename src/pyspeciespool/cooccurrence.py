"""
Species co-occurrence matrix used by Beals smoothing.

Entry M[i, j] is the probability of finding species j in a plot given that
species i occurs there. A matrix may be supplied by the caller or built from
the presence data. When built here, the pair counts are kept so that the
matrix can be recomputed without the occurrences of one target plot.
"""
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import sparse

from .logging_config import get_logger

__all__ = [
    'CooccurrenceMatrix',
    'build_cooccurrence_matrix',
    'presence_matrix',
]

logger = get_logger(__name__)


def presence_matrix(species_table: pd.DataFrame, plot_ids: Sequence[str],
                    species_ids: Sequence[str]) -> sparse.csr_matrix:
    """Build the binary plots x species presence matrix.

    Args:
        species_table: Validated table with plot_id, species_id, abundance columns
        plot_ids: Row order
        species_ids: Column order, the full species universe

    Returns:
        CSR matrix of int8 with 1 where the species has positive abundance
    """
    row_index = pd.Index(plot_ids)
    col_index = pd.Index(species_ids)
    positive = species_table[species_table['abundance'] > 0]
    rows = row_index.get_indexer(positive['plot_id'])
    cols = col_index.get_indexer(positive['species_id'])
    keep = (rows >= 0) & (cols >= 0)

    matrix = sparse.coo_matrix(
        (np.ones(int(keep.sum()), dtype=np.int8), (rows[keep], cols[keep])),
        shape=(len(row_index), len(col_index)),
    ).tocsr()
    # Repeated (plot, species) rows collapse to a single presence
    matrix.sum_duplicates()
    matrix.data[:] = 1
    return matrix


@dataclass(frozen=True)
class CooccurrenceMatrix:
    """Conditional co-occurrence probabilities over a fixed species universe.

    Attributes:
        species: Species ids, the order of rows and columns
        values: Dense species x species probability matrix
        pair_counts: Number of plots holding both species, when built from data
        occurrences: Number of plots holding each species, when built from data
    """
    species: Tuple[str, ...]
    values: np.ndarray
    pair_counts: Optional[np.ndarray] = None
    occurrences: Optional[np.ndarray] = None

    @property
    def n_species(self) -> int:
        return len(self.species)

    @property
    def supports_leave_one_out(self) -> bool:
        return self.pair_counts is not None

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> 'CooccurrenceMatrix':
        """Wrap a validated square DataFrame."""
        return cls(species=tuple(str(s) for s in frame.index),
                   values=frame.to_numpy(dtype=float))

    @classmethod
    def from_presence(cls, presence: sparse.spmatrix,
                      species: Sequence[str]) -> 'CooccurrenceMatrix':
        """Compute the matrix from a plots x species presence matrix."""
        presence = sparse.csr_matrix(presence, dtype=np.int32)
        pair_counts = np.asarray((presence.T @ presence).todense(), dtype=float)
        occurrences = np.diag(pair_counts).copy()
        values = _conditional(pair_counts, occurrences)
        return cls(species=tuple(species), values=values,
                   pair_counts=pair_counts, occurrences=occurrences)

    def excluding(self, presence_row: np.ndarray) -> np.ndarray:
        """Return the matrix recomputed without one plot's occurrences.

        Falls back to the stored values when no pair counts are available
        (matrix supplied by the caller).

        Args:
            presence_row: Binary vector over the species universe of the plot
                to leave out
        """
        if self.pair_counts is None:
            return self.values
        present_mask = np.asarray(presence_row).ravel() > 0
        present = np.flatnonzero(present_mask)
        if present.size == 0:
            return self.values
        # Only rows of species found in the left-out plot change
        values = self.values.copy()
        values[present] = _conditional(self.pair_counts[present] - present_mask,
                                       self.occurrences[present] - 1)
        return values

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.values, index=list(self.species), columns=list(self.species))


def _conditional(pair_counts: np.ndarray, occurrences: np.ndarray) -> np.ndarray:
    """Divide pair counts row-wise by occurrence counts; rows of absent species are 0."""
    with np.errstate(divide='ignore', invalid='ignore'):
        values = pair_counts / occurrences[:, None]
    values[occurrences <= 0, :] = 0.0
    return np.clip(values, 0.0, 1.0)


def build_cooccurrence_matrix(species_table: pd.DataFrame) -> pd.DataFrame:
    """Compute the co-occurrence matrix of a species table.

    Args:
        species_table: Validated table with plot_id, species_id, abundance columns

    Returns:
        Square DataFrame indexed by species id (sorted) on both axes
    """
    species = sorted(species_table['species_id'].unique())
    plots = list(pd.unique(species_table['plot_id']))
    logger.info("Co-occurrence matrix not specified - calculating it for %d species", len(species))
    presence = presence_matrix(species_table, plots, species)
    return CooccurrenceMatrix.from_presence(presence, species).to_frame()
