"""Population plots for BioSim.

Every function:
  - Accepts plain counts (no dependency on the engine's state objects)
  - Returns a matplotlib Figure
  - Has an optional ``save_path`` parameter (saves PNG when given)

matplotlib backend is forced to Agg (no display) on import.
"""

from __future__ import annotations

import matplotlib
matplotlib.use('Agg')

from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

import matplotlib.pyplot as plt
import numpy as np

from biosim.types import Census, Species
from biosim.viz.style import (
    AXIS_COLOR,
    BACKGROUND,
    FONT_FAMILY,
    SPECIES_CMAPS,
    SPECIES_COLORS,
    light_figure,
    save_figure,
)


# ═══════════════════════════════════════════════════════════════════════
# 1. POPULATION DYNAMICS
# ═══════════════════════════════════════════════════════════════════════

def plot_population_dynamics(
    counts: Mapping[Species, Sequence[int]],
    years: Optional[Sequence[int]] = None,
    title: str = 'Population dynamics',
    save_path: Optional[Union[str, Path]] = None,
) -> plt.Figure:
    """One line per species of its island-wide count per year.

    Args:
        counts: species → yearly counts.
        years: x values; 0..n-1 when omitted.
        title: Figure caption.
        save_path: Optional path to save the figure.

    Returns:
        matplotlib Figure.
    """
    fig, ax = light_figure()
    n = max((len(v) for v in counts.values()), default=0)
    if years is None:
        years = np.arange(n)
    years = np.asarray(years)

    for species, series in counts.items():
        series = np.asarray(series)
        ax.plot(years[:len(series)], series,
                color=SPECIES_COLORS[species], linewidth=2,
                label=species.label)

    ymax = max((int(np.max(v)) for v in counts.values() if len(v)), default=0)
    ax.set_xlim(0, max(int(years[-1]) if len(years) else 0, 1))
    ax.set_ylim(0, ymax + 10)
    ax.set_xlabel('Year', fontsize=15, family=FONT_FAMILY)
    ax.set_ylabel('Animals', fontsize=15, family=FONT_FAMILY)
    ax.set_title(title, fontsize=24, family=FONT_FAMILY, color=AXIS_COLOR)
    ax.legend(facecolor=BACKGROUND, edgecolor=AXIS_COLOR,
              prop={'family': FONT_FAMILY, 'size': 14})

    if save_path:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# 2. SPATIAL DISTRIBUTION
# ═══════════════════════════════════════════════════════════════════════

def distribution_grid(census: Census, species: Species,
                      n_rows: int, n_cols: int) -> np.ndarray:
    """(n_rows, n_cols) array of one species' count per cell."""
    grid = np.zeros((n_rows, n_cols), dtype=np.int64)
    for (row, col), counts in census.per_cell.items():
        grid[row, col] = counts.get(species, 0)
    return grid


def plot_distribution(
    census: Census,
    n_rows: int,
    n_cols: int,
    save_path: Optional[Union[str, Path]] = None,
) -> plt.Figure:
    """Side-by-side maps of where each species lives.

    Args:
        census: Metrics query result.
        n_rows, n_cols: Island dimensions.
        save_path: Optional path to save the figure.

    Returns:
        matplotlib Figure.
    """
    species_list = list(SPECIES_COLORS)
    fig, axes = plt.subplots(1, len(species_list),
                             figsize=(6 * len(species_list), 5))
    fig.patch.set_facecolor(BACKGROUND)

    for ax, species in zip(np.atleast_1d(axes), species_list):
        grid = distribution_grid(census, species, n_rows, n_cols)
        im = ax.imshow(grid, cmap=SPECIES_CMAPS[species], origin='upper',
                       vmin=0, vmax=max(int(grid.max()), 1))
        ax.set_title(f'{species.label}s: {census.total(species)}',
                     family=FONT_FAMILY, fontsize=14)
        ax.set_xticks([])
        ax.set_yticks([])
        fig.colorbar(im, ax=ax, fraction=0.046, pad=0.04)

    if save_path:
        save_figure(fig, save_path)
    return fig
