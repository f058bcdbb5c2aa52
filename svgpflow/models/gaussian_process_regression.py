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
"""Module containing a model for exact GP regression."""
from typing import Optional, Tuple

import tensorflow as tf
import tensorflow_probability as tfp
from gpflow.config import default_float
from gpflow.kernels import Kernel

from svgpflow.base import TensorType
from svgpflow.likelihoods import Gaussian
from svgpflow.mean_function import MeanFunction
from svgpflow.models.models import GPModel
from svgpflow.prior import GaussianProcessPrior
from svgpflow.utils import flatten_observations


class GaussianProcessRegression(GPModel):
    """
    Performs exact GP regression with a Gaussian likelihood.

    The key reference is Chapter 2 of::

        Gaussian Processes for Machine Learning
        Carl Edward Rasmussen and Christopher K. I. Williams
        The MIT Press, 2006. ISBN 0-262-18253-X.

    The cost is cubic in the number of data points, so this model is only suited to small
    datasets, where it is the exact counterpart of
    :class:`~svgpflow.models.sparse_variational.SparseVariationalGaussianProcess`.
    """

    def __init__(
        self,
        input_data: Tuple[TensorType, TensorType],
        kernel: Kernel,
        noise_variance: TensorType = 1.0,
        mean_function: Optional[MeanFunction] = None,
    ) -> None:
        """
        :param input_data: A tuple of ``(inputs, observations)`` containing the observed data:
            inputs with shape ``[num_data, input_dim]``, observations with shape
            ``[num_data]`` or ``[num_data, 1]``.
        :param kernel: A kernel defining a prior over functions.
        :param noise_variance: The variance of the Gaussian observation noise.
        :param mean_function: The mean function for the GP. Defaults to no mean function.
        :raises ValueError: If the inputs and observations have different lengths.
        """
        super().__init__(self.__class__.__name__)
        inputs, observations = input_data
        inputs = tf.cast(inputs, default_float())
        observations = flatten_observations(tf.cast(observations, default_float()))
        if inputs.shape.rank != 2:
            raise ValueError(f"inputs must have shape [num_data, input_dim], got {inputs.shape}")
        if inputs.shape[0] != observations.shape[0]:
            raise ValueError(
                f"got {inputs.shape[0]} inputs but {observations.shape[0]} observations"
            )

        self._inputs = inputs
        self._observations = observations
        # To collect kernel and mean function gpflow.Module trainable_variables
        self._prior = GaussianProcessPrior(kernel, mean_function)
        self.likelihood = Gaussian(variance=noise_variance)

    @property
    def inputs(self) -> tf.Tensor:
        """
        Return the inputs of the observations.

        :return: A tensor with shape ``[num_data, input_dim]``.
        """
        return self._inputs

    @property
    def observations(self) -> tf.Tensor:
        """
        Return the observations.

        :return: A tensor with shape ``[num_data]``.
        """
        return self._observations

    @property
    def kernel(self) -> Kernel:
        """
        Return the kernel of the GP.
        """
        return self._prior.kernel

    @property
    def mean_function(self) -> MeanFunction:
        """
        Return the mean function of the GP.
        """
        return self._prior.mean_function

    def _marginal(self) -> Tuple[tf.Tensor, tf.Tensor]:
        mean, covariance = self._prior.evaluate_prior(
            self._inputs, noise_or_jitter=self.likelihood.variance
        )
        return mean, tf.linalg.cholesky(covariance)

    def log_likelihood(self) -> tf.Tensor:
        """
        Calculate the log marginal likelihood of the observations given the hyperparameters:

        .. math:: log p(y | ϑ) = log 𝓝(y; μ(X), K_xx + σ²I)

        :return: A scalar tensor.
        """
        mean, chol = self._marginal()
        return tfp.distributions.MultivariateNormalTriL(mean, chol).log_prob(self._observations)

    def loss(self) -> tf.Tensor:
        """
        Return the loss, which is the negative log likelihood.
        """
        return -self.log_likelihood()

    def predict_f(
        self, new_inputs: TensorType, full_cov: bool = False
    ) -> Tuple[tf.Tensor, tf.Tensor]:
        r"""
        Predict the latent function at `new_inputs`:

        .. math::
            &mean = μ(X*) + K_*ₓ(K_xx + σ²I)⁻¹(y - μ(X))\\
            &cov = K_** - K_*ₓ(K_xx + σ²I)⁻¹K_ₓ*

        :param new_inputs: A tensor with shape ``[num_new, input_dim]``.
        :param full_cov: Either full covariance (`True`) or marginal variances (`False`).
        :return: The mean, with shape ``[num_new]``, and the variances, with shape
            ``[num_new]``, or the covariance, with shape ``[num_new, num_new]``.
        """
        new_inputs = tf.cast(new_inputs, default_float())
        mean, chol = self._marginal()
        Kmn = self._prior.cross_covariance(self._inputs, new_inputs)
        A = tf.linalg.triangular_solve(chol, Kmn, lower=True)
        alpha = tf.linalg.triangular_solve(chol, (self._observations - mean)[:, None], lower=True)
        f_mean = self._prior.mean(new_inputs) + tf.matmul(A, alpha, transpose_a=True)[:, 0]
        if full_cov:
            _, Knn = self._prior.evaluate_prior(new_inputs)
            return f_mean, Knn - tf.matmul(A, A, transpose_a=True)
        Knn = self._prior.marginal_variances(new_inputs)
        return f_mean, Knn - tf.reduce_sum(tf.square(A), axis=0)

    def predict_y(
        self, new_inputs: TensorType, full_cov: bool = False
    ) -> Tuple[tf.Tensor, tf.Tensor]:
        """
        Predict the observations at `new_inputs`, adding the noise variance to the
        latent (co)variances.
        """
        f_mean, f_cov = self.predict_f(new_inputs, full_cov)
        if full_cov:
            return f_mean, self.likelihood.add_noise(f_cov)
        return self.likelihood.predict_mean_and_var(f_mean, f_cov)
