"""BioSim visualization library.

Modules:
  - style: Species colours and theme helpers
  - population: Population time series and spatial distribution maps
"""

from biosim.viz.style import (  # noqa: F401
    BACKGROUND,
    SPECIES_CMAPS,
    SPECIES_COLORS,
    apply_light_theme,
    light_figure,
    save_figure,
)

from biosim.viz.population import (  # noqa: F401
    distribution_grid,
    plot_distribution,
    plot_population_dynamics,
)
