"""Light theme styling for BioSim plots.

One fixed colour per species so every figure reads the same way.
"""

import matplotlib.pyplot as plt

from biosim.types import Species

# ═══════════════════════════════════════════════════════════════════════
# COLOR PALETTE
# ═══════════════════════════════════════════════════════════════════════

BACKGROUND = '#fbfaf5'
AXIS_COLOR = '#000000'

SPECIES_COLORS = {
    Species.FORAGER:  '#84bfa1',   # sage
    Species.PREDATOR: '#f2c38f',   # apricot
}

# Per-species colormaps for distribution maps
SPECIES_CMAPS = {
    Species.FORAGER:  'Greens',
    Species.PREDATOR: 'Oranges',
}

FONT_FAMILY = 'monospace'


# ═══════════════════════════════════════════════════════════════════════
# THEME HELPERS
# ═══════════════════════════════════════════════════════════════════════

def apply_light_theme(fig=None, ax=None):
    """Apply the background, spine and font settings."""
    if fig is not None:
        fig.patch.set_facecolor(BACKGROUND)
    if ax is not None:
        ax.set_facecolor(BACKGROUND)
        ax.tick_params(colors=AXIS_COLOR, labelsize=11)
        for spine in ax.spines.values():
            spine.set_color(AXIS_COLOR)
        ax.grid(False)


def light_figure(figsize=(10.24, 7.68), **kwargs):
    """Create a Figure + Axes with the theme applied."""
    fig, ax = plt.subplots(figsize=figsize, **kwargs)
    apply_light_theme(fig=fig, ax=ax)
    return fig, ax


def save_figure(fig, save_path, dpi=100):
    """Save with tight layout and the themed background, then close."""
    fig.tight_layout()
    fig.savefig(save_path, dpi=dpi, facecolor=fig.get_facecolor(),
                edgecolor='none', bbox_inches='tight')
    plt.close(fig)
