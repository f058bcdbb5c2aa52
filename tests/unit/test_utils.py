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
"""Module containing the unit tests for the `utils` module."""
import numpy as np
import pytest
import tensorflow as tf

from svgpflow.utils import add_jitter, check_jitter, flatten_observations, to_stateless_seed


@pytest.mark.parametrize("jitter", [0.0, -1e-6, 0, np.float64(-1.0)])
def test_check_jitter_rejects_non_positive(jitter):
    """Test that a non-positive jitter is a configuration error."""
    with pytest.raises(ValueError):
        check_jitter(jitter)


def test_add_jitter():
    """Test that the jitter is added to the diagonal only, without modifying the input."""
    matrix = tf.constant([[2.0, 0.5], [0.5, 1.0]], dtype=tf.float64)
    jittered = add_jitter(matrix, 1e-3)

    np.testing.assert_allclose(jittered, [[2.001, 0.5], [0.5, 1.001]])
    np.testing.assert_allclose(matrix, [[2.0, 0.5], [0.5, 1.0]])


def test_add_jitter_rejects_non_positive_tensor():
    """Test that a non-positive jitter tensor fails an assertion."""
    matrix = tf.eye(2, dtype=tf.float64)
    with pytest.raises(tf.errors.InvalidArgumentError):
        add_jitter(matrix, tf.constant(-1.0, dtype=tf.float64))


@pytest.mark.parametrize("shape", [(4,), (4, 1)])
def test_flatten_observations(shape):
    """Test that observations with a single column are flattened."""
    observations = np.arange(4.0).reshape(shape)
    np.testing.assert_array_equal(flatten_observations(observations), np.arange(4.0))


def test_flatten_observations_rejects_multiple_columns():
    """Test that multi-output observations are rejected."""
    with pytest.raises((ValueError, tf.errors.InvalidArgumentError)):
        flatten_observations(np.zeros((4, 2)))


def test_to_stateless_seed():
    """Test that integer and pair seeds become shape [2] int64 tensors."""
    seed = to_stateless_seed(3)
    assert seed.dtype == tf.int64
    np.testing.assert_array_equal(seed, [3, 0])
    np.testing.assert_array_equal(to_stateless_seed((1, 2)), [1, 2])
