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
"""Module containing posterior processes for sparse variational GP models."""
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import tensorflow as tf
import gpflow

from svgpflow.base import Seed, TensorType
from svgpflow.conditionals import sparse_conditional
from svgpflow.gaussian import CholeskyGaussian, InducingPrior, VariationalPosterior
from svgpflow.likelihoods import Likelihood
from svgpflow.prior import GaussianProcessPrior
from svgpflow.utils import add_jitter, flatten_observations, tf_scope_class_decorator


class PosteriorProcess(gpflow.Module, ABC):
    """
    Abstract class for forming a posterior process.

    Posteriors that extend this class must implement the :meth:`predict_f`, :meth:`predict_y`,
    :meth:`sample_f`, :meth:`predict_log_density` and :meth:`__call__` methods.
    """

    @abstractmethod
    def predict_f(
        self, inputs: TensorType, full_cov: bool = False
    ) -> Tuple[tf.Tensor, tf.Tensor]:
        """
        Get the posterior mean and (co)variance of the latent function at `inputs`.

        :param inputs: A tensor with shape ``[num_inputs, input_dim]``.
        :param full_cov: Whether to return the full covariance or only the marginal variances.
        :return: The mean, with shape ``[num_inputs]``, and the variances, with shape
            ``[num_inputs]``, or the covariance, with shape ``[num_inputs, num_inputs]``.
        :raises NotImplementedError: Must be implemented in derived classes.
        """
        raise NotImplementedError()

    @abstractmethod
    def predict_y(
        self, inputs: TensorType, full_cov: bool = False
    ) -> Tuple[tf.Tensor, tf.Tensor]:
        """
        Get the predictive mean and (co)variance of the observations at `inputs`.

        :param inputs: A tensor with shape ``[num_inputs, input_dim]``.
        :param full_cov: Whether to return the full covariance or only the marginal variances.
        :return: As for :meth:`predict_f`.
        :raises NotImplementedError: Must be implemented in derived classes.
        """
        raise NotImplementedError()

    @abstractmethod
    def sample_f(self, inputs: TensorType, num_samples: int, seed: Seed) -> tf.Tensor:
        """
        Draw joint samples of the latent function at `inputs`.

        :param inputs: A tensor with shape ``[num_inputs, input_dim]``.
        :param num_samples: The number of samples to draw.
        :param seed: The seed of the stateless random number generator.
        :return: A tensor with shape ``[num_samples, num_inputs]``.
        :raises NotImplementedError: Must be implemented in derived classes.
        """
        raise NotImplementedError()

    @abstractmethod
    def predict_log_density(self, inputs: TensorType, observations: TensorType) -> tf.Tensor:
        """
        Get the log predictive density of each observation.

        :param inputs: A tensor with shape ``[num_inputs, input_dim]``.
        :param observations: A tensor with shape ``[num_inputs]`` or ``[num_inputs, 1]``.
        :return: A tensor with shape ``[num_inputs]``.
        :raises NotImplementedError: Must be implemented in derived classes.
        """
        raise NotImplementedError()

    @abstractmethod
    def __call__(self, inputs: TensorType) -> Tuple[tf.Tensor, tf.Tensor]:
        """
        Get the mean and full covariance of the process at `inputs`.

        :param inputs: A tensor with shape ``[num_inputs, input_dim]``.
        :return: The mean, with shape ``[num_inputs]``, and the covariance, with shape
            ``[num_inputs, num_inputs]``.
        :raises NotImplementedError: Must be implemented in derived classes.
        """
        raise NotImplementedError()


@tf_scope_class_decorator
class SparseVariationalPosterior(PosteriorProcess):
    """
    The approximate posterior of a sparse variational GP:

    .. math:: q(f(.)) = ∫ p(f(.) | u) q(u) du

    ...conditioned in exactly the same way as the evidence lower bound.

    The posterior holds references to the parameters of the model it came from, not copies:
    the inducing prior and variational distribution are rebuilt on every call, so predictions
    always reflect the current parameter values.

    Calling the posterior returns the mean and full covariance of the latent function, or, if
    `include_likelihood` is `True`, of the observations. In observation space the noise
    variance is added to the diagonal for a Gaussian likelihood. Other likelihoods only
    support marginal predictions through :meth:`predict_y`.
    """

    def __init__(
        self,
        prior: GaussianProcessPrior,
        q_mu: TensorType,
        q_sqrt: TensorType,
        inducing_inputs: TensorType,
        jitter: TensorType,
        likelihood: Optional[Likelihood] = None,
        include_likelihood: bool = False,
    ):
        """
        :param prior: The GP prior.
        :param q_mu: The variational mean :math:`m`, with shape ``[M]``.
        :param q_sqrt: The lower triangular :math:`A`, with shape ``[M, M]``.
        :param inducing_inputs: The inducing inputs :math:`Z`, with shape ``[M, input_dim]``.
        :param jitter: The jitter added to the diagonal of the inducing prior covariance, and
            of predictive covariances before sampling.
        :param likelihood: The likelihood, required for predictions of observations.
        :param include_likelihood: Whether calling the posterior predicts observations
            rather than the latent function.
        :raises ValueError: If `include_likelihood` is set without a likelihood.
        """
        super().__init__(self.__class__.__name__)
        if include_likelihood and likelihood is None:
            raise ValueError("include_likelihood requires a likelihood")
        self._prior = prior
        self._q_mu = q_mu
        self._q_sqrt = q_sqrt
        self._inducing_inputs = inducing_inputs
        self._jitter = jitter
        self._likelihood = likelihood
        self.include_likelihood = include_likelihood

    @property
    def inducing_prior(self) -> InducingPrior:
        """ Return the prior at the inducing inputs, for the current parameter values. """
        return InducingPrior.from_prior(self._prior, self._inducing_inputs, self._jitter)

    @property
    def variational_posterior(self) -> VariationalPosterior:
        """ Return the variational distribution, for the current parameter values. """
        return VariationalPosterior(self._q_mu, self._q_sqrt)

    def _require_likelihood(self) -> Likelihood:
        if self._likelihood is None:
            raise ValueError("predictions of observations require a likelihood")
        return self._likelihood

    def predict_f(
        self, inputs: TensorType, full_cov: bool = False
    ) -> Tuple[tf.Tensor, tf.Tensor]:
        """
        Get the posterior mean and (co)variance of the latent function at `inputs`.

        :param inputs: A tensor with shape ``[num_inputs, input_dim]``.
        :param full_cov: Whether to return the full covariance or only the marginal variances.
        :return: The mean, with shape ``[num_inputs]``, and the variances, with shape
            ``[num_inputs]``, or the covariance, with shape ``[num_inputs, num_inputs]``.
        """
        return sparse_conditional(
            self._prior,
            self._inducing_inputs,
            self.inducing_prior,
            self.variational_posterior,
            inputs,
            full_cov=full_cov,
        )

    def predict_y(
        self, inputs: TensorType, full_cov: bool = False
    ) -> Tuple[tf.Tensor, tf.Tensor]:
        """
        Get the predictive mean and (co)variance of the observations at `inputs`.

        :param inputs: A tensor with shape ``[num_inputs, input_dim]``.
        :param full_cov: Whether to return the full covariance or only the marginal variances.
        :return: As for :meth:`predict_f`.
        :raises ValueError: If there is no likelihood, or if the full covariance is requested
            for a non-Gaussian likelihood.
        """
        likelihood = self._require_likelihood()
        if full_cov and not likelihood.is_gaussian:
            raise ValueError(
                f"the full predictive covariance is only available for a Gaussian likelihood, "
                f"got {likelihood.__class__.__name__}"
            )
        f_mean, f_cov = self.predict_f(inputs, full_cov=full_cov)
        if full_cov:
            return f_mean, likelihood.add_noise(f_cov)
        return likelihood.predict_mean_and_var(f_mean, f_cov)

    def sample_f(self, inputs: TensorType, num_samples: int, seed: Seed) -> tf.Tensor:
        """
        Draw joint samples of the latent function at `inputs`.

        :param inputs: A tensor with shape ``[num_inputs, input_dim]``.
        :param num_samples: The number of samples to draw.
        :param seed: The seed of the stateless random number generator.
        :return: A tensor with shape ``[num_samples, num_inputs]``.
        """
        mean, cov = self.predict_f(inputs, full_cov=True)
        chol = tf.linalg.cholesky(add_jitter(cov, self._jitter))
        return CholeskyGaussian(mean, chol).sample(num_samples, seed)

    def predict_log_density(self, inputs: TensorType, observations: TensorType) -> tf.Tensor:
        """
        Get the log predictive density of each observation.

        :param inputs: A tensor with shape ``[num_inputs, input_dim]``.
        :param observations: A tensor with shape ``[num_inputs]`` or ``[num_inputs, 1]``.
        :return: A tensor with shape ``[num_inputs]``.
        :raises ValueError: If there is no likelihood.
        """
        likelihood = self._require_likelihood()
        f_mean, f_var = self.predict_f(inputs)
        observations = tf.cast(flatten_observations(observations), f_mean.dtype)
        return likelihood.predict_log_density(f_mean, f_var, observations)

    def __call__(self, inputs: TensorType) -> Tuple[tf.Tensor, tf.Tensor]:
        """
        Get the mean and full covariance at `inputs`, of the latent function or, if
        `include_likelihood` is set, of the observations.

        :param inputs: A tensor with shape ``[num_inputs, input_dim]``.
        :return: The mean, with shape ``[num_inputs]``, and the covariance, with shape
            ``[num_inputs, num_inputs]``.
        :raises ValueError: If `include_likelihood` is set and the likelihood is not Gaussian.
        """
        if self.include_likelihood:
            return self.predict_y(inputs, full_cov=True)
        return self.predict_f(inputs, full_cov=True)
