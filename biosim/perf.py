"""Performance monitoring and benchmarking for BioSim.

PhaseTimer gives per-phase wall-clock timing of the yearly cycle and is a
no-op when disabled:

    timer = PhaseTimer(enabled=True)
    island = Island(geography, rng=rng, timer=timer)
    for _ in range(100):
        island.yearly_cycle()
    print(timer.report())

`benchmark` times repeated runs of the same scenario, each on an
independent random stream.
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from biosim.config import SpeciesParameters
from biosim.rng import spawn_rngs
from biosim.types import Census, Coordinate, Species

logger = logging.getLogger(__name__)


@dataclass
class PhaseStats:
    """Accumulated timing for one phase."""
    total_time: float = 0.0
    call_count: int = 0
    max_time: float = 0.0

    @property
    def mean_time(self) -> float:
        return self.total_time / self.call_count if self.call_count > 0 else 0.0


class PhaseTimer:
    """Wall-clock time per named phase of the yearly cycle."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._stats: Dict[str, PhaseStats] = defaultdict(PhaseStats)

    @contextmanager
    def track(self, phase: str):
        if not self.enabled:
            yield
            return

        t0 = time.perf_counter()
        yield
        elapsed = time.perf_counter() - t0

        stats = self._stats[phase]
        stats.total_time += elapsed
        stats.call_count += 1
        stats.max_time = max(stats.max_time, elapsed)

    def get_stats(self) -> Dict[str, PhaseStats]:
        return dict(self._stats)

    def total_seconds(self) -> Dict[str, float]:
        return {name: s.total_time for name, s in self._stats.items()}

    def report(self, title: str = "Yearly cycle breakdown") -> str:
        """Human-readable table, slowest phase first."""
        total = sum(s.total_time for s in self._stats.values())
        lines = [
            f"{title}",
            f"{'Phase':<14} {'Total (s)':>10} {'Calls':>7} {'Mean (ms)':>10} {'%':>6}",
        ]
        for name, stats in sorted(self._stats.items(), key=lambda x: -x[1].total_time):
            pct = (stats.total_time / total * 100) if total > 0 else 0.0
            lines.append(
                f"{name:<14} {stats.total_time:>10.4f} {stats.call_count:>7} "
                f"{stats.mean_time * 1000:>10.3f} {pct:>5.1f}%"
            )
        lines.append(f"{'TOTAL':<14} {total:>10.4f}")
        return '\n'.join(lines)

    def reset(self) -> None:
        self._stats.clear()


# ═══════════════════════════════════════════════════════════════════════
# BENCHMARK
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class BenchmarkResult:
    """Timings of repeated runs of one scenario."""
    years: int
    seconds: List[float] = field(default_factory=list)
    phase_seconds: Dict[str, float] = field(default_factory=dict)
    final_census: Optional[Census] = None

    @property
    def mean_seconds(self) -> float:
        return float(np.mean(self.seconds)) if self.seconds else 0.0

    @property
    def seconds_per_year(self) -> float:
        return self.mean_seconds / self.years if self.years else 0.0


def benchmark(
    geography: Sequence[str],
    population: Sequence[Tuple[Coordinate, Species, int]],
    years: int = 1000,
    repeats: int = 1,
    seed: int = 42,
    species_params: Optional[Dict[Species, SpeciesParameters]] = None,
) -> BenchmarkResult:
    """Time `repeats` fresh runs of `years` yearly cycles.

    Phase timings are summed over all repeats; the census is the final
    state of the last repeat.
    """
    from biosim.island import Island

    if repeats < 1:
        raise ValueError(f"repeats must be >= 1, got {repeats}")

    timer = PhaseTimer(enabled=True)
    result = BenchmarkResult(years=years)
    for i, rng in enumerate(spawn_rngs(seed, repeats)):
        island = Island(geography, species_params=species_params,
                        rng=rng, timer=timer)
        island.add_population(population)

        t0 = time.perf_counter()
        for _ in range(years):
            island.yearly_cycle()
        elapsed = time.perf_counter() - t0

        result.seconds.append(elapsed)
        result.final_census = island.animals()
        logger.info("Benchmark repeat %d/%d: %d years in %.3fs",
                    i + 1, repeats, years, elapsed)

    result.phase_seconds = timer.total_seconds()
    logger.debug("\n%s", timer.report())
    return result
