"""Rendering pipeline: sample the grid, evaluate the expression, colorize."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

import numpy as np
from tqdm import tqdm

from .coloring import SENTINEL_RGB, colorize
from .expression import DOUBLE_PRECISION, Expression, ExpressionEvaluationError, parse_expression
from .sampler import SamplingMetadata, compute_metadata, sample_grid

ERROR_POLICIES = ("abort", "sentinel")


def _is_count(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool) and value > 0


@dataclass(frozen=True)
class RenderConfig:
    """Parameters that describe a single render of an expression."""

    expression: str
    size: int = 512
    half_range: float = 1.0
    mode: int = 1
    variable: str = "z"
    precision: int = DOUBLE_PRECISION
    workers: int = 1
    on_error: str = "abort"

    def validate(self) -> None:
        if not _is_count(self.size):
            raise ValueError(f"size must be a positive integer, got {self.size}")
        if not float(self.half_range) > 0.0:
            raise ValueError(f"range must be positive, got {self.half_range}")
        if not str(self.variable).isidentifier():
            raise ValueError(f"invalid variable name {self.variable!r}")
        if not _is_count(self.precision) or self.precision < DOUBLE_PRECISION:
            raise ValueError(f"precision must be at least {DOUBLE_PRECISION} bits, got {self.precision}")
        if not _is_count(self.workers):
            raise ValueError(f"workers must be a positive integer, got {self.workers}")
        if self.on_error not in ERROR_POLICIES:
            raise ValueError(f"on_error must be one of {', '.join(ERROR_POLICIES)}, got {self.on_error!r}")


@dataclass(frozen=True)
class EvaluationOutcome:
    """The value of one sample, or the reason it has none."""

    value: Optional[complex] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason is None


@dataclass(frozen=True)
class RenderResult:
    """Container for the pixels and numerical results of a render."""

    pixels: np.ndarray
    values: np.ndarray
    failures: np.ndarray
    metadata: SamplingMetadata


class RenderError(Exception):
    """Raised when a sample fails to evaluate under the ``abort`` policy."""

    def __init__(self, x: int, y: int, value: complex, reason: str) -> None:
        super().__init__(f"evaluation failed at pixel ({x}, {y}), z = {value}: {reason}")
        self.x = x
        self.y = y
        self.value = value
        self.reason = reason


def select_candidate(candidates: list[complex]) -> complex:
    """Pick the value to color from a multi-valued result: the first (principal) one."""

    return candidates[0]


def evaluate_sample(expression: Expression, z: complex) -> EvaluationOutcome:
    try:
        return EvaluationOutcome(value=select_candidate(expression.evaluate(z)))
    except ExpressionEvaluationError as exc:
        return EvaluationOutcome(reason=str(exc))


def evaluate_row(expression: Expression, row: np.ndarray) -> list[EvaluationOutcome]:
    return [evaluate_sample(expression, complex(z)) for z in row]


class _WorkerExpression(threading.local):
    """Per-thread evaluator; each worker gets its own mpmath context."""

    def __init__(self, expression: Expression) -> None:
        self.expression = expression.fork()


def render_frame(config: RenderConfig, *, device: Optional[str] = None, progress: bool = True) -> RenderResult:
    """Render ``config`` into an RGB pixel buffer indexed ``[y, x]``.

    The expression is parsed once before any sampling. Rows are evaluated on a
    thread pool, each worker thread on its own fork of the parsed expression;
    results are consumed in row-major order so the first failure reported
    under the ``abort`` policy is deterministic.
    """

    config.validate()
    expression = parse_expression(config.expression, config.variable, config.precision)
    metadata = compute_metadata(config.size, config.half_range)
    grid = sample_grid(config.size, config.half_range)
    local = _WorkerExpression(expression)

    size = int(config.size)
    values = np.zeros((size, size), dtype=np.complex128)
    failures = np.zeros((size, size), dtype=bool)

    with ThreadPoolExecutor(max_workers=int(config.workers)) as executor, tqdm(
        total=size * size,
        disable=not progress,
        mininterval=0.5,
        unit="px",
        leave=False,
    ) as bar:
        rows = executor.map(lambda row: evaluate_row(local.expression, row), grid)
        try:
            for y, row in enumerate(rows):
                for x, outcome in enumerate(row):
                    if outcome.ok:
                        values[y, x] = outcome.value
                        continue
                    if config.on_error == "abort":
                        raise RenderError(x, y, complex(grid[y, x]), outcome.reason)
                    failures[y, x] = True
                bar.update(size)
        except RenderError:
            executor.shutdown(wait=False, cancel_futures=True)
            raise

    pixels = colorize(values, config.mode, device=device)
    pixels[failures] = SENTINEL_RGB

    return RenderResult(
        pixels=pixels,
        values=values,
        failures=failures,
        metadata=metadata,
    )
