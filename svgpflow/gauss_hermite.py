#
# Copyright (c) 2021 The Svgpflow Contributors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
"""
Module containing the Gauss-Hermite rule for one-dimensional Gaussian expectations.

For :math:`f ~ 𝓝(μ, σ²)` and the nodes :math:`xⱼ` and weights :math:`wⱼ` of the physicists'
Hermite rule:

.. math:: E[g(f)] ≈ Σⱼ wⱼ/√π g(μ + √2 σ xⱼ)

The rule is exact for polynomials :math:`g` of degree up to :math:`2n - 1`.
"""
import logging
from functools import lru_cache
from typing import Callable, Tuple

import numpy as np
import tensorflow as tf

from svgpflow.utils import tf_scope_fn_decorator

logger = logging.getLogger(__name__)


def check_num_points(num_points: int, name: str = "num_points") -> int:
    """
    :raises ValueError: If `num_points` is not a positive integer.
    """
    if isinstance(num_points, bool) or not isinstance(num_points, (int, np.integer)):
        raise ValueError(f"{name} must be a positive integer, got {num_points!r}")
    if num_points < 1:
        raise ValueError(f"{name} must be a positive integer, got {num_points}")
    return int(num_points)


@lru_cache(maxsize=None)
def gauss_hermite_nodes(num_points: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Return the nodes and weights of the `num_points` Gauss-Hermite rule for the weight
    function :math:`exp(-x²)`.

    Tables are computed once per order and shared by the whole process. The returned arrays
    are read-only.

    :param num_points: The number of nodes.
    :return: The nodes and weights, each with shape ``[num_points]``.
    """
    num_points = check_num_points(num_points)
    logger.debug("Computing the %d point Gauss-Hermite table", num_points)
    nodes, weights = np.polynomial.hermite.hermgauss(num_points)
    nodes.setflags(write=False)
    weights.setflags(write=False)
    return nodes, weights


@tf_scope_fn_decorator
def gauss_hermite_expectation(
    fn: Callable[[tf.Tensor], tf.Tensor], means: tf.Tensor, variances: tf.Tensor, num_points: int
) -> tf.Tensor:
    """
    Compute :math:`E[fn(f)]` for :math:`f ~ 𝓝(means, variances)` element-wise.

    :param fn: A function taking a tensor with shape ``[num_points, N]`` and returning a tensor
        of the same shape.
    :param means: A tensor with shape ``[N]``.
    :param variances: A tensor with shape ``[N]``.
    :param num_points: The number of nodes.
    :return: A tensor with shape ``[N]``.
    """
    nodes, weights = gauss_hermite_nodes(num_points)
    nodes = tf.constant(nodes, dtype=means.dtype)[:, None]
    weights = tf.constant(weights / np.sqrt(np.pi), dtype=means.dtype)[:, None]
    fs = means + tf.sqrt(2.0 * variances) * nodes  # [num_points, N]
    return tf.reduce_sum(weights * fn(fs), axis=0)

