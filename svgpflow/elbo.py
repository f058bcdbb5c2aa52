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
Module containing the evidence lower bound of sparse variational GPs:

.. math:: ELBO = (N / |b|) Σᵢ∈b E_{q(fᵢ)}[log p(yᵢ | fᵢ)] - KL[q(u) ‖ p(u)]

...where :math:`b` is a minibatch of the :math:`N` data points. When the minibatch is the
whole dataset the scale is exactly one. The KL term is never scaled.
"""
from typing import NamedTuple, Optional

import tensorflow as tf
from gpflow.config import default_float

from svgpflow.base import Seed, TensorType
from svgpflow.conditionals import sparse_conditional
from svgpflow.gaussian import InducingPrior, VariationalPosterior
from svgpflow.kl import kl_divergence
from svgpflow.likelihoods import Likelihood
from svgpflow.prior import GaussianProcessPrior
from svgpflow.quadrature import QuadratureStrategy
from svgpflow.utils import flatten_observations, tf_scope_fn_decorator


class ELBOTerms(NamedTuple):
    """
    The terms of the evidence lower bound, kept apart for monitoring.
    """

    expected_log_likelihood: tf.Tensor
    """ The sum over the (mini)batch of the expected log likelihoods. """
    kl: tf.Tensor
    """ The divergence :math:`KL[q(u) ‖ p(u)]`. """
    scale: tf.Tensor
    """ The ratio of the dataset size to the batch size. """

    @property
    def elbo(self) -> tf.Tensor:
        """ Return :math:`scale · ELL - KL`. """
        return self.scale * self.expected_log_likelihood - self.kl


@tf_scope_fn_decorator
def minibatch_scale(num_data: TensorType, batch_size: TensorType) -> tf.Tensor:
    """
    Return the factor :math:`N / |b|` that makes the minibatch expected log likelihood an
    unbiased estimate of the full data sum.

    :param num_data: The total number of data points :math:`N`.
    :param batch_size: The number of data points :math:`|b|` in the minibatch.
    :raises InvalidArgumentError: If `num_data` is smaller than `batch_size`.
    """
    num_data = tf.cast(num_data, default_float())
    batch_size = tf.cast(batch_size, default_float())
    tf.debugging.assert_greater_equal(
        num_data, batch_size, message="num_data must be at least the size of the minibatch"
    )
    return num_data / batch_size


@tf_scope_fn_decorator
def elbo_terms(
    prior: GaussianProcessPrior,
    inducing_inputs: TensorType,
    inducing_prior: InducingPrior,
    variational_posterior: VariationalPosterior,
    likelihood: Likelihood,
    quadrature: QuadratureStrategy,
    inputs: TensorType,
    observations: TensorType,
    *,
    num_data: Optional[TensorType] = None,
    seed: Optional[Seed] = None,
) -> ELBOTerms:
    """
    Compute the terms of the evidence lower bound on a (mini)batch of data.

    :param prior: The GP prior.
    :param inducing_inputs: The inducing inputs :math:`Z`, with shape ``[M, input_dim]``.
    :param inducing_prior: The prior :math:`p(u)` at :math:`Z`.
    :param variational_posterior: The variational distribution :math:`q(u)`.
    :param likelihood: The likelihood :math:`p(y | f)`.
    :param quadrature: The strategy for the expected log likelihoods.
    :param inputs: The inputs of the batch, with shape ``[batch_size, input_dim]``.
    :param observations: The observations of the batch, with shape ``[batch_size]`` or
        ``[batch_size, 1]``.
    :param num_data: The size of the full dataset, when `inputs` is a minibatch.
        Defaults to the batch size.
    :param seed: A seed for stochastic quadrature.
    :return: The expected log likelihood, KL divergence and scale.
    """
    f_means, f_vars = sparse_conditional(
        prior, inducing_inputs, inducing_prior, variational_posterior, inputs
    )
    observations = tf.cast(flatten_observations(observations), f_means.dtype)

    expected_log_likelihood = quadrature.expected_log_likelihood(
        likelihood, f_means, f_vars, observations, seed=seed
    )
    kl = kl_divergence(variational_posterior, inducing_prior)

    if num_data is None:
        scale = tf.ones((), dtype=kl.dtype)
    else:
        scale = tf.cast(minibatch_scale(num_data, tf.shape(observations)[0]), kl.dtype)
    return ELBOTerms(expected_log_likelihood, kl, scale)


def elbo(*args, **kwargs) -> tf.Tensor:
    """
    Compute the evidence lower bound; see :func:`elbo_terms` for the arguments.

    :return: A scalar tensor.
    """
    return elbo_terms(*args, **kwargs).elbo


def negative_elbo(*args, **kwargs) -> tf.Tensor:
    """
    Compute the negative evidence lower bound, the objective to minimise; see
    :func:`elbo_terms` for the arguments.

    :return: A scalar tensor.
    """
    return -elbo(*args, **kwargs)
