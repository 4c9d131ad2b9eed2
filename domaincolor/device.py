"""TensorFlow device selection for the coloring kernels."""

from __future__ import annotations

from typing import Callable, Optional

import tensorflow as tf


def select_device(log: Optional[Callable[..., None]] = None) -> str:
    """Return ``/GPU:0`` when TensorFlow sees a usable GPU, otherwise ``/CPU:0``."""

    log = log or (lambda *args, **kwargs: None)
    gpus = tf.config.list_physical_devices('GPU')
    if not gpus:
        log("No GPU found, using CPU")
        return '/CPU:0'
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
    except RuntimeError as e:
        log(e)
        return '/CPU:0'
    log("GPU found, using %s" % gpus[0].name)
    return '/GPU:0'
