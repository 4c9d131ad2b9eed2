"""Domain-coloring kernels mapping complex values to HSL and RGB."""

from __future__ import annotations

import math
from typing import NamedTuple, Optional

import numpy as np
import tensorflow as tf

MODE_ARGUMENT_MODULUS = 1
MODE_GRID_LINE = 2

GRID_LINE_FLOOR = 0.001
GRID_LINE_SCALE = 20.0

SENTINEL_RGB = (255, 0, 255)


class HSL(NamedTuple):
    """A color in hue (degrees), saturation and lightness."""

    h: float
    s: float
    l: float

    def to_rgb(self) -> tuple[int, int, int]:
        rgb = hsl_to_rgb(
            tf.constant([self.h], dtype=tf.float64),
            tf.constant([self.s], dtype=tf.float64),
            tf.constant([self.l], dtype=tf.float64),
        ).numpy()[0]
        return int(rgb[0]), int(rgb[1]), int(rgb[2])


def is_argument_modulus(mode: int) -> bool:
    """Mode 1 selects argument/modulus coloring; every other mode selects grid lines."""

    return int(mode) == MODE_ARGUMENT_MODULUS


@tf.function
def argument_modulus_hsl(zs: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor]:
    """Phase becomes hue, modulus becomes lightness in ``[0, 0.5)``."""

    degrees = tf.math.angle(zs) * tf.constant(180.0 / math.pi, dtype=tf.float64)
    h = tf.math.floormod(degrees + 360.0, 360.0)
    two = tf.constant(2.0, dtype=tf.float64)
    l = (1.0 - tf.pow(two, -tf.abs(zs))) * 0.5
    s = tf.ones_like(h)
    return h, s, l


@tf.function
def grid_line_hsl(zs: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor]:
    """Hue spikes where the real or imaginary part is close to an integer.

    The hue is left unnormalized; :func:`hsl_to_rgb` wraps it.
    """

    x = tf.math.real(zs)
    y = tf.math.imag(zs)
    hx = -tf.math.log(tf.abs(x - tf.round(x)) + GRID_LINE_FLOOR)
    hy = -tf.math.log(tf.abs(y - tf.round(y)) + GRID_LINE_FLOOR)
    h = 360.0 - (hx + hy) * GRID_LINE_SCALE
    s = tf.ones_like(h)
    l = tf.fill(tf.shape(h), tf.constant(0.5, dtype=tf.float64))
    return h, s, l


def _hue_to_channel(p: tf.Tensor, q: tf.Tensor, t: tf.Tensor) -> tf.Tensor:
    t = tf.math.floormod(t, 1.0)
    rising = p + (q - p) * 6.0 * t
    falling = p + (q - p) * (2.0 / 3.0 - t) * 6.0
    return tf.where(t < 1.0 / 6.0, rising, tf.where(t < 0.5, q, tf.where(t < 2.0 / 3.0, falling, p)))


@tf.function
def hsl_to_rgb(h: tf.Tensor, s: tf.Tensor, l: tf.Tensor) -> tf.Tensor:
    """Convert HSL tensors to an 8-bit RGB tensor with a trailing channel axis.

    Hue is wrapped with floor-modulo 360, so negative hues and hues past 360
    are accepted.
    """

    hue = tf.math.floormod(h, 360.0) / 360.0
    q = tf.where(l < 0.5, l * (1.0 + s), l + s - l * s)
    p = 2.0 * l - q
    channels = tf.stack(
        [
            _hue_to_channel(p, q, hue + 1.0 / 3.0),
            _hue_to_channel(p, q, hue),
            _hue_to_channel(p, q, hue - 1.0 / 3.0),
        ],
        axis=-1,
    )
    grey = tf.stack([l, l, l], axis=-1)
    channels = tf.where(tf.expand_dims(tf.equal(s, 0.0), -1), grey, channels)
    scaled = tf.floor(tf.clip_by_value(channels, 0.0, 1.0) * 255.0 + 0.5)
    return tf.cast(scaled, tf.uint8)


def hsl_components(values: np.ndarray, mode: int, *, device: Optional[str] = None) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return the ``(h, s, l)`` arrays of ``values`` under ``mode``."""

    with tf.device(device if device is not None else "/CPU:0"):
        zs = tf.convert_to_tensor(np.asarray(values, dtype=np.complex128))
        kernel = argument_modulus_hsl if is_argument_modulus(mode) else grid_line_hsl
        h, s, l = kernel(zs)
    return h.numpy(), s.numpy(), l.numpy()


def colorize(values: np.ndarray, mode: int, *, device: Optional[str] = None) -> np.ndarray:
    """Color an array of complex values, returning ``uint8`` RGB with a trailing axis of 3."""

    with tf.device(device if device is not None else "/CPU:0"):
        zs = tf.convert_to_tensor(np.asarray(values, dtype=np.complex128))
        kernel = argument_modulus_hsl if is_argument_modulus(mode) else grid_line_hsl
        rgb = hsl_to_rgb(*kernel(zs))
    return np.array(rgb.numpy(), copy=True)


def map_color(z: complex, mode: int) -> HSL:
    """Map a single complex value to its :class:`HSL` color."""

    h, s, l = hsl_components(np.array([z], dtype=np.complex128), mode)
    return HSL(float(h[0]), float(s[0]), float(l[0]))
