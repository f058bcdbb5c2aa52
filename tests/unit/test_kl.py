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
"""Module containing the unit tests for the KL divergence between Gaussians."""
import numpy as np
import pytest
import tensorflow as tf
import tensorflow_probability as tfp

from svgpflow.gaussian import VariationalPosterior
from svgpflow.kl import gauss_kl, kl_divergence
from tests.tools.generate_random_objects import generate_random_lower_triangular_matrix


def test_kl_of_identical_distributions_is_zero():
    """Test that KL[q ‖ q] is zero for a standard normal."""
    q = VariationalPosterior(np.zeros(3), np.eye(3))
    np.testing.assert_allclose(kl_divergence(q, q), 0.0, atol=1e-9)


def test_kl_matches_tfp(with_tf_random_seed, num_inducing):
    """Test the closed form against TensorFlow Probability."""
    q_mu, p_mu = np.random.randn(2, num_inducing)
    q_sqrt = generate_random_lower_triangular_matrix(num_inducing)
    p_chol = generate_random_lower_triangular_matrix(num_inducing)

    expected = tfp.distributions.kl_divergence(
        tfp.distributions.MultivariateNormalTriL(q_mu, q_sqrt),
        tfp.distributions.MultivariateNormalTriL(p_mu, p_chol),
    )
    np.testing.assert_allclose(gauss_kl(q_mu, q_sqrt, p_mu, p_chol), expected, rtol=1e-10)


def test_kl_is_positive_and_asymmetric(with_tf_random_seed):
    """Test that the KL divergence of distinct distributions is positive and not symmetric."""
    q = VariationalPosterior(np.random.randn(4), generate_random_lower_triangular_matrix(4))
    p = VariationalPosterior(np.random.randn(4), generate_random_lower_triangular_matrix(4))

    kl_qp = kl_divergence(q, p).numpy()
    kl_pq = kl_divergence(p, q).numpy()
    assert kl_qp > 0.0
    assert kl_pq > 0.0
    assert not np.isclose(kl_qp, kl_pq)


def test_kl_rejects_non_positive_diagonal():
    """Test that a square root with a zero on its diagonal fails an assertion."""
    q_sqrt = np.diag([1.0, 0.0, 1.0])
    with pytest.raises(tf.errors.InvalidArgumentError):
        gauss_kl(np.zeros(3), q_sqrt, np.zeros(3), np.eye(3))


def test_kl_gradients_are_finite(with_tf_random_seed):
    """Test that the KL divergence is differentiable with respect to q."""
    q_mu = tf.Variable(np.random.randn(3))
    q_sqrt = tf.Variable(generate_random_lower_triangular_matrix(3))
    p_chol = generate_random_lower_triangular_matrix(3)

    with tf.GradientTape() as tape:
        kl = gauss_kl(q_mu, q_sqrt, np.zeros(3), p_chol)
    for grad in tape.gradient(kl, [q_mu, q_sqrt]):
        assert np.all(np.isfinite(grad))
