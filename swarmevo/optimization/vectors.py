# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Elementwise operations on candidate vectors.
All vectors of a run share the same dimension, a mismatch is a programming error.
"""

import numpy as np


def _check(a: np.ndarray, b: np.ndarray) -> None:
    assert a.shape == b.shape, f"Vector shapes differ: {a.shape} vs {b.shape}"


def add(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    _check(a, b)
    return a + b


def subtract(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    _check(a, b)
    return a - b


def scale(a: np.ndarray, factor: float) -> np.ndarray:
    return factor * a


def midpoint(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    _check(a, b)
    return 0.5 * (a + b)


def random_mult(a: np.ndarray, low: float, high: float, random_state: np.random.RandomState) -> np.ndarray:
    """Multiplies each component by its own independent U(low, high) sample"""
    return a * random_state.uniform(low, high, size=a.shape)
