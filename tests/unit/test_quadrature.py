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
"""Module containing the unit tests for the quadrature strategies."""
import numpy as np
import pytest
import tensorflow as tf
from scipy.special import gammaln

from svgpflow.likelihoods import Bernoulli, Gaussian, Poisson
from svgpflow.quadrature import (
    Analytic,
    DefaultQuadrature,
    GaussHermite,
    MonteCarlo,
    QuadratureStrategy,
    get_quadrature,
)
from tests.tools.check_distributions import assert_samples_close_to_mean_in_expectation

F_MEANS = np.array([0.3, -0.5, 1.0])
F_VARS = np.array([0.2, 0.6, 0.1])
COUNTS = np.array([2.0, 0.0, 3.0])


def _poisson_expectations(f_means, f_vars, counts):
    """E[log Poisson(y; exp(f))] = yμ - exp(μ + σ²/2) - log y!"""
    return counts * f_means - np.exp(f_means + f_vars / 2) - gammaln(counts + 1)


def test_analytic_matches_gauss_hermite():
    """Test the closed form Gaussian expectation against high order quadrature."""
    likelihood = Gaussian(variance=0.2)
    args = (likelihood, np.array([1.0]), np.array([0.5]), np.array([1.2]))

    np.testing.assert_allclose(
        Analytic().expectations(*args), GaussHermite(32).expectations(*args), atol=1e-6
    )


def test_single_node_misses_the_variance_term():
    """
    Test that one node evaluates the log density at the mean, which misses the σᵢ²/2σ² term of
    the Gaussian expectation, while two nodes are exact.
    """
    noise_variance = 0.2
    likelihood = Gaussian(variance=noise_variance)
    args = (likelihood, F_MEANS, F_VARS, COUNTS)
    analytic = Analytic().expectations(*args)

    np.testing.assert_allclose(
        GaussHermite(1).expectations(*args) - analytic, F_VARS / (2 * noise_variance)
    )
    np.testing.assert_allclose(GaussHermite(2).expectations(*args), analytic)


def test_gauss_hermite_converges(with_tf_random_seed):
    """Test that the quadrature error decreases with the number of nodes."""
    expected = _poisson_expectations(F_MEANS, F_VARS, COUNTS)
    errors = [
        np.max(np.abs(GaussHermite(n).expectations(Poisson(), F_MEANS, F_VARS, COUNTS) - expected))
        for n in [2, 5, 20]
    ]
    assert errors[0] > errors[1] > errors[2]
    assert errors[2] < 1e-8


def test_monte_carlo_is_reproducible():
    """Test that a fixed seed gives identical estimates, and a different seed does not."""
    strategy = MonteCarlo(num_samples=10, seed=3)
    args = (Poisson(), F_MEANS, F_VARS, COUNTS)

    np.testing.assert_array_equal(strategy.expectations(*args), strategy.expectations(*args))
    np.testing.assert_array_equal(
        strategy.expectations(*args, seed=4), MonteCarlo(10, seed=4).expectations(*args)
    )
    assert not np.allclose(strategy.expectations(*args), strategy.expectations(*args, seed=4))


def test_monte_carlo_agrees_with_gauss_hermite():
    """Test that a large Monte Carlo estimate is within a few standard errors of quadrature."""
    args = (Poisson(), F_MEANS, F_VARS, COUNTS)
    estimate = MonteCarlo(num_samples=20000, seed=1).expectations(*args)

    # the standard deviation of log p(y | f) is below 1.5 for these marginals
    np.testing.assert_allclose(estimate, GaussHermite().expectations(*args), atol=0.06)


def test_monte_carlo_error_shrinks_with_the_number_of_samples():
    """
    Test that estimates over many seeds are centred on the quadrature value, and that their
    spread shrinks as 1/√S in the number of samples S.
    """
    args = (Poisson(), F_MEANS, F_VARS, COUNTS)
    exact = GaussHermite().expectations(*args).numpy()

    spreads = []
    for first_seed, num_samples in [(0, 100), (1000, 1600)]:
        strategy = MonteCarlo(num_samples=num_samples)
        estimates = np.stack(
            [
                strategy.expectations(*args, seed=seed).numpy()
                for seed in range(first_seed, first_seed + 200)
            ]
        )
        assert_samples_close_to_mean_in_expectation(estimates, exact)
        spreads.append(np.std(estimates, axis=0))

    # √(1600 / 100) = 4
    np.testing.assert_allclose(spreads[0] / spreads[1], 4.0, rtol=0.25)


def test_monte_carlo_is_differentiable():
    """Test that the reparameterised estimate has gradients with respect to the marginals."""
    f_means = tf.Variable(F_MEANS)
    f_vars = tf.Variable(F_VARS)
    with tf.GradientTape() as tape:
        ell = MonteCarlo(seed=0).expected_log_likelihood(Poisson(), f_means, f_vars, COUNTS)
    for grad in tape.gradient(ell, [f_means, f_vars]):
        assert grad is not None
        assert np.all(np.isfinite(grad))


def test_analytic_rejects_non_gaussian_likelihoods():
    """Test that the closed form strategy refuses likelihoods it cannot handle."""
    with pytest.raises(ValueError):
        Analytic().expectations(Bernoulli(), F_MEANS, F_VARS, np.ones(3))


def test_default_quadrature():
    """Test that the default strategy is analytic for Gaussian likelihoods only."""
    default = DefaultQuadrature()
    assert isinstance(default.resolve(Gaussian()), Analytic)
    assert isinstance(default.resolve(Poisson()), GaussHermite)
    assert default.resolve(Poisson()).num_points == 20

    np.testing.assert_allclose(
        default.expectations(Poisson(), F_MEANS, F_VARS, COUNTS),
        GaussHermite(20).expectations(Poisson(), F_MEANS, F_VARS, COUNTS),
    )


def test_expected_log_likelihood_is_a_sum():
    """Test that the data term sums, rather than averages, over the data."""
    likelihood = Gaussian(variance=0.5)
    expectations = Analytic().expectations(likelihood, F_MEANS, F_VARS, COUNTS)
    np.testing.assert_allclose(
        Analytic().expected_log_likelihood(likelihood, F_MEANS, F_VARS, COUNTS),
        np.sum(expectations),
    )


def test_mismatched_shapes_are_rejected():
    """Test that marginals and observations of different lengths are rejected."""
    with pytest.raises((ValueError, tf.errors.InvalidArgumentError)):
        GaussHermite().expectations(Poisson(), F_MEANS, F_VARS, COUNTS[:2])


@pytest.mark.parametrize("strategy_class", [GaussHermite, MonteCarlo])
@pytest.mark.parametrize("size", [0, -1])
def test_non_positive_sizes_are_rejected(strategy_class, size):
    """Test that the number of nodes or samples must be positive."""
    with pytest.raises(ValueError):
        strategy_class(size)


@pytest.mark.parametrize(
    "name, expected_class",
    [
        ("default", DefaultQuadrature),
        ("analytic", Analytic),
        ("gauss-hermite", GaussHermite),
        ("gauss_hermite", GaussHermite),
        ("monte-carlo", MonteCarlo),
    ],
)
def test_get_quadrature_by_name(name, expected_class):
    """Test that strategies can be selected by name."""
    assert isinstance(get_quadrature(name), expected_class)


def test_get_quadrature():
    """Test that instances pass through, None gives the default and unknown names fail."""
    strategy = MonteCarlo(num_samples=5)
    assert get_quadrature(strategy) is strategy
    assert isinstance(get_quadrature(None), DefaultQuadrature)
    assert isinstance(get_quadrature(None), QuadratureStrategy)

    with pytest.raises(ValueError):
        get_quadrature("simpson")
    with pytest.raises(ValueError):
        get_quadrature(20)
