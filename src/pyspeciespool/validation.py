"""
Eager input validation for PySpeciesPool.

Every check in this module runs before any target plot is processed; a
failure aborts the whole call with a SpeciesPoolError subclass.
"""
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from .exceptions import (
    EmptyPlotError,
    InvalidDataError,
    InvalidParameterError,
    SpeciesMismatchError,
)
from .logging_config import get_logger

__all__ = ['InputValidator', 'SPECIES_COLUMNS', 'PLOT_COLUMNS']

SPECIES_COLUMNS = ['plot_id', 'species_id', 'abundance']
PLOT_COLUMNS = ['x', 'y', 'plot_id', 'area']

logger = get_logger(__name__)


class InputValidator:
    """Validates and normalizes the tables handed to the estimator."""

    @staticmethod
    def validate_species_table(table: pd.DataFrame) -> pd.DataFrame:
        """Check the species table and return it with canonical column names.

        Columns are read by position: plot id, species id, abundance. Ids are
        converted to strings.

        Raises:
            InvalidDataError: On wrong shape, non-numeric, missing or negative abundances
            EmptyPlotError: If a plot has zero total abundance
        """
        if not isinstance(table, pd.DataFrame):
            raise InvalidDataError("species table", "expected a pandas DataFrame")
        if table.shape[1] != 3:
            raise InvalidDataError(
                "species table",
                "should have three columns: releve id, species id, abundance",
            )
        if table.empty:
            raise InvalidDataError("species table", "no rows")

        out = table.copy()
        out.columns = SPECIES_COLUMNS
        if not pd.api.types.is_numeric_dtype(out['abundance']) or \
                pd.api.types.is_bool_dtype(out['abundance']):
            raise InvalidDataError("species table", "the abundance column should be numeric")
        if out['abundance'].isna().any():
            raise InvalidDataError("species table", "abundance contains missing values")
        if (out['abundance'] < 0).any():
            raise InvalidDataError("species table", "abundance values must be >= 0")
        if out['plot_id'].isna().any() or out['species_id'].isna().any():
            raise InvalidDataError("species table", "plot and species ids must not be missing")

        out['plot_id'] = out['plot_id'].astype(str)
        out['species_id'] = out['species_id'].astype(str)
        out['abundance'] = out['abundance'].astype(float)

        totals = out.groupby('plot_id', sort=False)['abundance'].sum()
        empty = totals.index[totals == 0]
        if len(empty):
            raise EmptyPlotError(empty)
        return out

    @staticmethod
    def validate_plot_table(table: pd.DataFrame) -> pd.DataFrame:
        """Check the plot table and return it with canonical column names.

        Columns are read by position: x (longitude), y (latitude), plot id,
        area. Missing or non-positive areas are kept; they only exclude the
        plot from species-area curves.

        Raises:
            InvalidDataError: On wrong shape, non-numeric or missing coordinates,
                non-numeric area, duplicate plot ids
        """
        if not isinstance(table, pd.DataFrame):
            raise InvalidDataError("plot table", "expected a pandas DataFrame")
        if table.shape[1] != 4:
            raise InvalidDataError(
                "plot table",
                "should have four columns: x, y, releve id, plot area",
            )
        if table.empty:
            raise InvalidDataError("plot table", "no rows")

        out = table.copy()
        out.columns = PLOT_COLUMNS
        for column in ('x', 'y'):
            if not pd.api.types.is_numeric_dtype(out[column]):
                raise InvalidDataError("plot table", f"coordinate column '{column}' should be numeric")
            if out[column].isna().any() or not np.isfinite(out[column].to_numpy(float)).all():
                raise InvalidDataError("plot table", f"coordinate column '{column}' has missing values")
        if not pd.api.types.is_numeric_dtype(out['area']):
            raise InvalidDataError("plot table", "column 4 should be numeric, and contain plot areas")
        if out['plot_id'].isna().any():
            raise InvalidDataError("plot table", "plot ids must not be missing")

        out['plot_id'] = out['plot_id'].astype(str)
        out['area'] = out['area'].astype(float)
        duplicated = out['plot_id'][out['plot_id'].duplicated()]
        if len(duplicated):
            raise InvalidDataError("plot table", f"duplicate plot ids: {list(duplicated.unique()[:10])}")
        return out.reset_index(drop=True)

    @staticmethod
    def check_geographic_range(plots: pd.DataFrame) -> None:
        """Reject coordinates that cannot be longitude/latitude degrees."""
        if (plots['y'].abs() > 90).any() or (plots['x'].abs() > 360).any():
            raise InvalidDataError(
                "plot table",
                "coordinates outside longitude/latitude range while geodesic is set",
            )

    @staticmethod
    def reconcile_plots(species: pd.DataFrame, plots: pd.DataFrame) -> pd.DataFrame:
        """Match species rows to the plot table.

        Species rows of plots absent from the plot table are dropped with a
        warning. Plots of the plot table with no species rows are rejected.

        Returns:
            The species table restricted to known plots
        """
        known = species['plot_id'].isin(set(plots['plot_id']))
        if not known.all():
            dropped = species.loc[~known, 'plot_id'].unique()
            logger.warning(
                "Dropping %d species rows of %d plots missing from the plot table",
                int((~known).sum()), len(dropped),
            )
            species = species.loc[known]

        present = set(species['plot_id'])
        missing = [pid for pid in plots['plot_id'] if pid not in present]
        if missing:
            raise EmptyPlotError(missing)
        return species

    @staticmethod
    def validate_cooccurrence(matrix: pd.DataFrame, species_ids: Iterable[str]) -> pd.DataFrame:
        """Check a species-by-species co-occurrence matrix.

        Sparse pandas columns are densified. Labels are converted to strings.

        Raises:
            InvalidDataError: If the matrix is not square, labels differ between
                rows and columns, or values fall outside [0, 1]
            SpeciesMismatchError: If species of the species table are missing
        """
        if not isinstance(matrix, pd.DataFrame):
            raise InvalidDataError("co-occurrence matrix", "expected a pandas DataFrame")
        if matrix.shape[0] != matrix.shape[1]:
            raise InvalidDataError("co-occurrence matrix", f"not square: {matrix.shape}")

        if any(isinstance(dtype, pd.SparseDtype) for dtype in matrix.dtypes):
            matrix = matrix.sparse.to_dense()

        rows = [str(label) for label in matrix.index]
        cols = [str(label) for label in matrix.columns]
        if rows != cols:
            raise InvalidDataError("co-occurrence matrix",
                                   "row and column species must be identical and in the same order")
        if len(set(rows)) != len(rows):
            raise InvalidDataError("co-occurrence matrix", "duplicate species labels")

        values = matrix.to_numpy(dtype=float)
        if not np.isfinite(values).all():
            raise InvalidDataError("co-occurrence matrix", "contains missing or infinite values")
        if (values < 0).any() or (values > 1).any():
            raise InvalidDataError("co-occurrence matrix", "values must lie in [0, 1]")

        missing = set(species_ids) - set(rows)
        if missing:
            raise SpeciesMismatchError(missing)

        return pd.DataFrame(values, index=rows, columns=cols)

    @staticmethod
    def validate_targets(targets: Sequence[int], n_plots: int) -> np.ndarray:
        """Check target row indices against the plot table size."""
        indices = np.asarray(list(targets))
        if indices.size == 0:
            return indices.astype(int)
        if not np.issubdtype(indices.dtype, np.integer):
            raise InvalidParameterError("targets", list(targets)[:10], "must be integer row indices")
        bad = indices[(indices < 0) | (indices >= n_plots)]
        if bad.size:
            raise InvalidParameterError(
                "targets", bad[:10].tolist(), f"row indices must be within [0, {n_plots - 1}]"
            )
        return indices.astype(int)
