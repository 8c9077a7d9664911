"""
Beals smoothing and compositional similarity.

Beals smoothing turns binary presence into the likelihood that each species
of the universe occurs in a plot, given the species that were observed there:

    beals[p, s] = mean over species i present in p of M[i, s]

Plots with no species present get 0 for every species. Similarity between two
Beals profiles is measured with Bray-Curtis dissimilarity:

    BC(u, v) = sum(|u - v|) / sum(u + v)
"""
import numpy as np

__all__ = [
    'beals_smoothing',
    'bray_curtis',
    'similarity_mask',
]


def beals_smoothing(presence: np.ndarray, cooccurrence: np.ndarray) -> np.ndarray:
    """Compute the Beals matrix of a set of plots.

    Args:
        presence: Dense binary plots x species matrix over the full universe
        cooccurrence: Species x species conditional probabilities, same order

    Returns:
        Plots x species matrix with values in [0, 1]
    """
    presence = np.asarray(presence, dtype=float)
    richness = presence.sum(axis=1)
    totals = presence @ np.asarray(cooccurrence, dtype=float)
    with np.errstate(divide='ignore', invalid='ignore'):
        beals = totals / richness[:, None]
    beals[richness == 0, :] = 0.0
    return np.clip(beals, 0.0, 1.0)


def bray_curtis(profiles: np.ndarray, reference: np.ndarray) -> np.ndarray:
    """Bray-Curtis dissimilarity of each row of ``profiles`` to ``reference``.

    Two all-zero profiles are identical and get dissimilarity 0.

    Args:
        profiles: Plots x species matrix
        reference: Vector over the same species

    Returns:
        Vector of dissimilarities in [0, 1]
    """
    profiles = np.atleast_2d(np.asarray(profiles, dtype=float))
    reference = np.asarray(reference, dtype=float).ravel()
    numerator = np.abs(profiles - reference).sum(axis=1)
    denominator = (profiles + reference).sum(axis=1)
    with np.errstate(divide='ignore', invalid='ignore'):
        dissimilarity = numerator / denominator
    dissimilarity[denominator == 0] = 0.0
    return dissimilarity


def similarity_mask(beals: np.ndarray, target_position: int, threshold: float) -> np.ndarray:
    """Select plots whose Beals profile is similar to the target's.

    Args:
        beals: Beals matrix of the neighbour set
        target_position: Row of the target plot within ``beals``
        threshold: Plots with dissimilarity strictly below this value are kept

    Returns:
        Boolean mask over the rows of ``beals``; the target row is always True
    """
    dissimilarity = bray_curtis(beals, beals[target_position])
    mask = dissimilarity < threshold
    mask[target_position] = True
    return mask
