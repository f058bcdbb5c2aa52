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
"""Module containing the unit tests for the sparse conditional."""
import numpy as np
import pytest
import tensorflow as tf

from svgpflow.conditionals import conditional, sparse_conditional
from svgpflow.gaussian import InducingPrior, VariationalPosterior
from svgpflow.mean_function import ConstantMeanFunction
from svgpflow.prior import GaussianProcessPrior
from tests.tools.generate_random_objects import (
    generate_random_inputs,
    generate_random_lower_triangular_matrix,
)

JITTER = 1e-4


@pytest.fixture(name="conditional_setup")
def _conditional_setup(with_tf_random_seed, kernel, num_inducing):
    inducing_inputs = generate_random_inputs(num_inducing)
    inputs = generate_random_inputs(6)
    Kmm = kernel(inducing_inputs).numpy() + JITTER * np.eye(num_inducing)
    Kmn = kernel(inducing_inputs, inputs).numpy()
    Knn = kernel(inputs).numpy()
    q_mu = np.random.randn(num_inducing)
    q_sqrt = generate_random_lower_triangular_matrix(num_inducing) * 0.3
    return Kmm, Kmn, Knn, q_mu, q_sqrt


def _dense_conditional(Kmm, Kmn, Knn, q_mu, q_sqrt, prior_mean_z):
    projection = np.linalg.solve(Kmm, Kmn)  # Kmm⁻¹Kmn
    mean = projection.T @ (q_mu - prior_mean_z)
    cov = Knn - Kmn.T @ projection + projection.T @ (q_sqrt @ q_sqrt.T) @ projection
    return mean, cov


def test_conditional_matches_dense_algebra(conditional_setup):
    """Test the triangular solve formulation against explicit inverses."""
    Kmm, Kmn, Knn, q_mu, q_sqrt = conditional_setup
    prior_mean_z = np.full(len(q_mu), 0.4)
    expected_mean, expected_cov = _dense_conditional(Kmm, Kmn, Knn, q_mu, q_sqrt, prior_mean_z)

    Lmm = np.linalg.cholesky(Kmm)
    mean, cov = conditional(
        Kmn, Lmm, Knn, q_mu, q_sqrt, prior_mean_z=prior_mean_z, full_cov=True
    )
    np.testing.assert_allclose(mean, expected_mean, rtol=1e-6, atol=1e-8)
    np.testing.assert_allclose(cov, expected_cov, rtol=1e-6, atol=1e-8)

    mean_diag, var = conditional(Kmn, Lmm, np.diag(Knn), q_mu, q_sqrt, prior_mean_z=prior_mean_z)
    np.testing.assert_allclose(mean_diag, mean)
    np.testing.assert_allclose(var, np.diag(cov), rtol=1e-10)


def test_conditional_on_the_prior_is_the_prior(conditional_setup):
    """Test that q(u) = p(u) gives back the prior at the new inputs."""
    Kmm, Kmn, Knn, _, _ = conditional_setup
    Lmm = np.linalg.cholesky(Kmm)

    mean, var = conditional(Kmn, Lmm, np.diag(Knn), np.zeros(len(Kmm)), Lmm)
    np.testing.assert_allclose(mean, np.zeros(len(Knn)), atol=1e-12)
    np.testing.assert_allclose(var, np.diag(Knn), rtol=1e-8)


def test_conditional_rejects_mismatched_shapes(conditional_setup):
    """Test that the variational parameters must match the inducing dimension."""
    Kmm, Kmn, Knn, q_mu, q_sqrt = conditional_setup
    with pytest.raises((ValueError, tf.errors.InvalidArgumentError)):
        conditional(Kmn, np.linalg.cholesky(Kmm), np.diag(Knn), np.append(q_mu, 0.0), q_sqrt)


def test_conditional_rejects_negative_variances():
    """Test that a numerically inconsistent prior fails an assertion instead of being clamped."""
    # a prior variance at X below what the inducing values explain
    Kmn = np.array([[1.0]])
    Lmm = np.array([[1.0]])
    with pytest.raises(tf.errors.InvalidArgumentError):
        conditional(Kmn, Lmm, np.array([0.5]), np.zeros(1), np.array([[1e-3]]))


def test_sparse_conditional_adds_the_prior_mean(with_tf_random_seed, kernel):
    """Test that the prior mean at the new inputs is included in the predicted mean."""
    inducing_inputs = generate_random_inputs(4)
    inputs = generate_random_inputs(5)
    q = VariationalPosterior(
        np.random.randn(4), generate_random_lower_triangular_matrix(4) * 0.3
    )

    zero_prior = GaussianProcessPrior(kernel)
    shifted_prior = GaussianProcessPrior(kernel, ConstantMeanFunction(2.0))
    shifted_q = VariationalPosterior(q.mean + 2.0, q.scale_tril)

    zero_mean, zero_var = sparse_conditional(
        zero_prior,
        inducing_inputs,
        InducingPrior.from_prior(zero_prior, inducing_inputs, JITTER),
        q,
        inputs,
    )
    shifted_mean, shifted_var = sparse_conditional(
        shifted_prior,
        inducing_inputs,
        InducingPrior.from_prior(shifted_prior, inducing_inputs, JITTER),
        shifted_q,
        inputs,
    )
    np.testing.assert_allclose(shifted_mean, zero_mean + 2.0, rtol=1e-8)
    np.testing.assert_allclose(shifted_var, zero_var)
