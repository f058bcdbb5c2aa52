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
"""Module containing the unit tests for the Gauss-Hermite rule."""
import numpy as np
import pytest
import tensorflow as tf

from svgpflow.gauss_hermite import (
    check_num_points,
    gauss_hermite_expectation,
    gauss_hermite_nodes,
)


def test_nodes_are_cached_and_read_only():
    """Test that the table of each order is computed once and cannot be modified."""
    nodes, weights = gauss_hermite_nodes(7)
    assert gauss_hermite_nodes(7)[0] is nodes

    with pytest.raises(ValueError):
        nodes[0] = 0.0
    with pytest.raises(ValueError):
        weights[0] = 0.0


@pytest.mark.parametrize("num_points", [1, 2, 10, 20])
def test_weights_integrate_the_weight_function(num_points):
    """Test that the weights sum to ∫ exp(-x²) dx = √π."""
    _, weights = gauss_hermite_nodes(num_points)
    np.testing.assert_allclose(np.sum(weights), np.sqrt(np.pi))


@pytest.mark.parametrize("num_points", [0, -3, 2.5, True, "20"])
def test_check_num_points(num_points):
    """Test that only positive integers are accepted."""
    with pytest.raises(ValueError):
        check_num_points(num_points)


def test_expectation_is_exact_for_low_order_polynomials():
    """Test that n points integrate polynomials of degree 2n - 1 exactly."""
    means = tf.constant([0.3, -1.2], dtype=tf.float64)
    variances = tf.constant([0.5, 2.0], dtype=tf.float64)

    second_moment = gauss_hermite_expectation(tf.square, means, variances, 2)
    np.testing.assert_allclose(second_moment, means ** 2 + variances)

    fourth_central = gauss_hermite_expectation(
        lambda fs: (fs - means) ** 4, means, variances, 3
    )
    np.testing.assert_allclose(fourth_central, 3.0 * variances ** 2)
