import os
import sys
import warnings
from argparse import ArgumentParser
from pathlib import Path

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

if _suppress_messages:
    warnings.filterwarnings(
        "ignore",
        message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
        category=UserWarning,
        module="google.protobuf",
    )

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


def error(message):
    print(f"error: {message}", file=sys.stderr)


import tensorflow as tf
import numpy as np

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")
    for handler in tf.get_logger().handlers:
        handler.setLevel("ERROR")

import PIL.Image

from domaincolor import (
    ExpressionParseError,
    RenderConfig,
    RenderError,
    render_frame,
    select_device,
)
from domaincolor.renderer import ERROR_POLICIES

DEFAULT_OUTPUT_STEM = "output"


def build_parser():
    parser = ArgumentParser(description='Render a domain-coloring image of a complex function.')

    parser.add_argument('expression', type=str,
                        help='expression in the free variable, e.g. "z^2 - 1" or "sin(z)/z"')

    parser.add_argument('-s', '--size', type=int,
                        dest='size', help='width and height of the image in pixels',
                        metavar='SIZE', default=512)

    parser.add_argument('-r', '--range', type=float,
                        dest='half_range', help='half-width of the square region sampled around the origin',
                        metavar='RANGE', default=1.0)

    parser.add_argument('-m', '--mode', type=int,
                        dest='mode', help='color mode: 1 for argument/modulus, any other value for grid lines',
                        metavar='MODE', default=1)

    parser.add_argument('--variable', type=str, default='z',
                        help='name of the free variable bound to each sample')

    parser.add_argument('--precision', type=int, default=53,
                        help='binary precision (bits) of the complex arithmetic; at least 53')

    parser.add_argument('--workers', type=int, default=1,
                        help='number of threads evaluating rows of the grid')

    parser.add_argument('--on-error', choices=ERROR_POLICIES, default='abort', dest='on_error',
                        help='"abort" stops on the first failing sample; "sentinel" paints failures magenta and continues.')

    parser.add_argument('--output', dest='output', type=str, default=None,
                        help='destination image file. Default: "output" with the --format extension.')

    parser.add_argument('--format', type=str,
                        dest='format', help='image file format. Can be any extension supported by Pillow. Default: "png".',
                        metavar='FORMAT', default='png')

    parser.add_argument('--no-progress', dest='progress', action='store_false',
                        help='disable the progress bar')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    return parser


def resolve_output_path(opt, parser: ArgumentParser) -> tuple[Path, str]:
    image_format = (opt.format or "png").lower().lstrip(".") or "png"
    if opt.output is None:
        return Path(DEFAULT_OUTPUT_STEM).with_suffix(f".{image_format}").resolve(), image_format

    output_path = Path(opt.output).expanduser()

    if str(opt.output).endswith(tuple(filter(None, {os.sep, os.altsep}))):
        parser.error("--output must be a file path.")
    if output_path.exists() and output_path.is_dir():
        parser.error("--output must point to a file, not a directory.")

    expected_suffix = f".{image_format}"
    if not output_path.suffix:
        output_path = output_path.with_suffix(expected_suffix)
    elif output_path.suffix.lower() != expected_suffix:
        parser.error(f"--output extension {output_path.suffix} does not match --format {image_format}.")
    return output_path.resolve(), image_format


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def write_single_image(pixels: np.ndarray, output_path: Path, image_format: str) -> None:
    """Write an RGB pixel buffer to ``output_path`` using the provided format."""

    image = PIL.Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8))
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output_path), format=_pil_format_name(image_format))


def build_config(opt, parser: ArgumentParser) -> RenderConfig:
    config = RenderConfig(
        expression=opt.expression,
        size=opt.size,
        half_range=opt.half_range,
        mode=opt.mode,
        variable=opt.variable,
        precision=opt.precision,
        workers=opt.workers,
        on_error=opt.on_error,
    )
    try:
        config.validate()
    except ValueError as exc:
        parser.error(str(exc))
    return config


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    global VERBOSE
    VERBOSE = bool(opt.verbose)
    log("TensorFlow version: %s" % tf.__version__)

    config = build_config(opt, parser)
    output_path, image_format = resolve_output_path(opt, parser)
    device = select_device(log)

    log(f"rendering {config.expression!r}: {config.size}x{config.size} over [-{config.half_range}, {config.half_range}]^2, mode {config.mode}")

    try:
        result = render_frame(config, device=device, progress=opt.progress)
    except ExpressionParseError as exc:
        error(f"invalid expression: {exc}")
        return 1
    except RenderError as exc:
        error(str(exc))
        return 1

    failed = int(result.failures.sum())
    if failed:
        log(f"{failed} samples failed to evaluate and were painted with the sentinel color")

    try:
        write_single_image(result.pixels, output_path, image_format)
    except (OSError, ValueError, KeyError) as exc:
        error(f"could not write {output_path}: {exc}")
        return 1

    log(f"wrote {output_path}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
