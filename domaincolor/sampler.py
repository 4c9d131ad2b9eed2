"""Sampling grid for the square ``[-half_range, half_range]`` region of the complex plane."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class SamplingMetadata:
    """Metadata describing the sampling grid of a rendered image."""

    x_min: float
    y_min: float
    step: float
    size: int

    @property
    def x_max(self) -> float:
        return self.x_min + self.step * (self.size - 1)

    @property
    def y_max(self) -> float:
        return self.y_min + self.step * (self.size - 1)


def grid_step(size: int, half_range: float) -> float:
    return (float(half_range) * 2.0) / int(size)


def compute_metadata(size: int, half_range: float) -> SamplingMetadata:
    return SamplingMetadata(
        x_min=-float(half_range),
        y_min=-float(half_range),
        step=grid_step(size, half_range),
        size=int(size),
    )


def sample(x: int, y: int, size: int, half_range: float) -> complex:
    """Return the complex sample for pixel column ``x`` and row ``y``."""

    step = grid_step(size, half_range)
    return complex(-float(half_range) + step * float(x), -float(half_range) + step * float(y))


def sample_grid(size: int, half_range: float) -> np.ndarray:
    """Return every sample as a ``(size, size)`` complex array indexed ``[y, x]``.

    Elements are bit-identical to :func:`sample` for the same pixel.
    """

    step = np.float64(grid_step(size, half_range))
    axis = np.float64(-float(half_range)) + step * np.arange(size, dtype=np.float64)
    X, Y = np.meshgrid(axis, axis)
    grid = np.empty((size, size), dtype=np.complex128)
    grid.real = X
    grid.imag = Y
    return grid
