"""Public API for domain-coloring utilities."""

from .coloring import (
    HSL,
    MODE_ARGUMENT_MODULUS,
    MODE_GRID_LINE,
    SENTINEL_RGB,
    colorize,
    hsl_components,
    hsl_to_rgb,
    map_color,
)
from .device import select_device
from .expression import (
    Expression,
    ExpressionError,
    ExpressionEvaluationError,
    ExpressionParseError,
    parse_expression,
)
from .renderer import (
    EvaluationOutcome,
    RenderConfig,
    RenderError,
    RenderResult,
    evaluate_sample,
    render_frame,
    select_candidate,
)
from .sampler import SamplingMetadata, compute_metadata, sample, sample_grid

__all__ = [
    "EvaluationOutcome",
    "Expression",
    "ExpressionError",
    "ExpressionEvaluationError",
    "ExpressionParseError",
    "HSL",
    "MODE_ARGUMENT_MODULUS",
    "MODE_GRID_LINE",
    "RenderConfig",
    "RenderError",
    "RenderResult",
    "SENTINEL_RGB",
    "SamplingMetadata",
    "colorize",
    "compute_metadata",
    "evaluate_sample",
    "hsl_components",
    "hsl_to_rgb",
    "map_color",
    "parse_expression",
    "render_frame",
    "sample",
    "sample_grid",
    "select_candidate",
    "select_device",
]
