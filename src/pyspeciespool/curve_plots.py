"""
Visualization functions for species-area curves and species pool results.
"""
import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from .results import CURVE_MODELS
from .species_area import predict

# Set default style
try:
    plt.style.use('seaborn-v0_8')
except OSError:
    try:
        plt.style.use('seaborn')
    except OSError:
        plt.style.use('default')

sns.set_palette("husl")

_MODEL_LABELS = {
    'arrhenius': 'Arrhenius',
    'gompertz': 'Gompertz',
    'michaelis_menten': 'Michaelis-Menten',
    'asymptotic': 'Asymptotic regression',
}


def plot_species_area_curve(curve, fits, title=None, save_path=None):
    """Plot an accumulation curve together with its fitted models.

    Args:
        curve: AccumulationCurve of the sampled plots
        fits: CurveFitResult; unavailable models are skipped
        title: Optional figure title
        save_path: Optional path to save the plot
    """
    fig, ax = plt.subplots(figsize=(8, 6))
    ax.plot(curve.area, curve.richness, 'ko', markersize=4, label='Accumulation')

    grid = np.linspace(float(np.min(curve.area)), float(np.max(curve.area)), 200)
    for name in CURVE_MODELS:
        fit = fits.fits()[name]
        if fit is None:
            continue
        ax.plot(grid, predict(fit, grid), '-',
                label=f"{_MODEL_LABELS[name]} (AIC {fit.aic:.1f})")

    ax.set_xlabel('Cumulative area')
    ax.set_ylabel('Species')
    ax.set_title(title or 'Species-Area Curve')
    ax.legend()
    ax.grid(True)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
    else:
        plt.show()

    plt.close(fig)


def plot_pool_estimates(results, save_path=None):
    """Compare observed richness with the richness estimates per plot.

    Args:
        results: Output table of species_pool
        save_path: Optional path to save the plot
    """
    estimates = ['chao', 'ichao2', 'jack1', 'jack2']
    frame = results.dropna(subset=['species'])

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(12, 5))
    fig.suptitle('Species Pool Estimates', fontsize=14)

    # Estimates against observed richness
    observed = frame['species'].astype(float)
    for column in estimates:
        ax1.scatter(observed, frame[column], s=12, label=column)
    if len(observed):
        upper = float(np.nanmax(frame[['species'] + estimates].astype(float).to_numpy()))
        ax1.plot([0, upper], [0, upper], 'k--', linewidth=1)
    ax1.set_xlabel('Observed species (sampled plots)')
    ax1.set_ylabel('Estimated species')
    ax1.legend()
    ax1.grid(True)

    # Distribution of the cutoff Beals values
    sns.histplot(results['beals_at_cutoff'].dropna(), ax=ax2, bins=20)
    ax2.set_xlabel('Beals value at cutoff')
    ax2.set_ylabel('Plots')

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
    else:
        plt.show()

    plt.close(fig)
