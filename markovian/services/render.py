"""
Density plots for comparing samplers.

Each sampler maps a uniform draw in [0, 1) to a value; drawing many
values per sampler and overlaying their densities is a quick visual
check that two samplers agree.
"""
from __future__ import annotations

import random
import tempfile
import webbrowser
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from markovian.config import settings
from markovian.utils.parallel import pmap


def density_frame(*samples: Sequence[float]) -> Tuple[List[float], List[str]]:
    """
    Flatten samples into values plus group labels.

    Returns:
        Tuple of (x, labels) where labels[i] is "PDF{k}" for the k-th sample
    """
    x: List[float] = []
    labels: List[str] = []
    for k, sample in enumerate(samples):
        x.extend(float(v) for v in sample)
        labels.extend([f"PDF{k}"] * len(sample))
    return x, labels


def draw(sampler: Callable[[float], float], popcount: Optional[int] = None) -> List[float]:
    """Apply sampler to popcount uniform draws in parallel."""
    popcount = popcount or settings.RENDER_POPCOUNT
    return pmap(range(popcount), lambda _: sampler(random.random()))


def compare_samples(*samples: Sequence[float], points: int = 512):
    """
    Overlay kernel density estimates of several samples.

    Each sample gets a Gaussian KDE (scipy, Scott's bandwidth) evaluated
    on a shared grid. A sample with a single distinct value has no
    spread to smooth and is drawn as a vertical line.

    Returns:
        matplotlib Figure
    """
    import matplotlib
    matplotlib.use("Agg")
    from matplotlib import pyplot as plt
    from scipy import stats

    x, labels = density_frame(*samples)
    dpi = 100
    fig, ax = plt.subplots(figsize=(settings.RENDER_WIDTH / dpi, settings.RENDER_HEIGHT / dpi), dpi=dpi)

    if x:
        grid = np.linspace(min(x), max(x), points)
        for group in dict.fromkeys(labels):
            values = np.array([v for v, label in zip(x, labels) if label == group])
            if np.ptp(values) == 0:
                ax.axvline(values[0], label=group)
                continue
            density = stats.gaussian_kde(values)(grid)
            ax.plot(grid, density, label=group)
            ax.fill_between(grid, density, alpha=0.3)

    ax.set_xlabel("x")
    ax.set_ylabel("density")
    ax.legend()
    return fig


def compare(*samplers: Callable[[float], float], popcount: Optional[int] = None):
    """Draw popcount values from each sampler and plot their densities."""
    return compare_samples(*(draw(f, popcount) for f in samplers))


def save_svg(figure, path: Optional[Path] = None) -> Path:
    """Write figure as SVG, to a temp file unless path is given."""
    if path is None:
        with tempfile.NamedTemporaryFile(prefix="compare", suffix=".svg", delete=False) as f:
            path = Path(f.name)
    figure.savefig(path, format="svg")
    return path


def display(figure) -> Path:
    """Save figure as SVG and open it in the browser."""
    path = save_svg(figure)
    webbrowser.open(path.as_uri())
    return path
