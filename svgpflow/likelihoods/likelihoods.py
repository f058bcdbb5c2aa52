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
"""Module containing the base class for likelihoods, and the Gaussian likelihood."""

import abc
from abc import abstractmethod
from typing import Tuple

import numpy as np
import gpflow
import tensorflow as tf
from gpflow.utilities import positive

from svgpflow.base import TensorType
from svgpflow.utils import tf_scope_class_decorator, tf_scope_fn_decorator


class Likelihood(gpflow.Module, abc.ABC):
    """
    Abstract class for likelihoods.

    A likelihood defines the observation model relating the observed variables :math:`Y`
    to the latent variables :math:`F` of a generative model. The observation model is specified
    through its conditional density :math:`p(Y|F)`, which factorises over data points.

    Likelihoods come in two flavours:

        * :class:`Gaussian`, for which the expected log density under a Gaussian
          :math:`q(fᵢ) = 𝓝(μᵢ, σᵢ²)` is available in closed form
        * :class:`~svgpflow.likelihoods.ScalarLikelihood`, any other log density, whose
          expectations need numerical quadrature

    .. note:: Implementations of this class should typically avoid performing computation in their
        `__init__` method. Performing computation in the constructor conflicts with
        running in TensorFlow's eager mode (and computation of gradients etc).
    """

    is_gaussian = False
    """ Whether the likelihood is Gaussian, and so supports closed form expectations. """

    @abstractmethod
    def log_prob(self, fs: TensorType, observations: TensorType) -> tf.Tensor:
        """
        Compute the log probability density :math:`log p(yᵢ|fᵢ)` element-wise.

        :param fs: The latent function values, with a shape that broadcasts against
            `observations`.
        :param observations: The observed values.
        :return: A tensor with the broadcast shape of `fs` and `observations`.
        """
        raise NotImplementedError

    @abstractmethod
    def predict_mean_and_var(
        self, f_means: TensorType, f_vars: TensorType
    ) -> Tuple[tf.Tensor, tf.Tensor]:
        """
        Compute the marginal means and variances of the predictive distribution over outputs:

        .. math:: p(yᵢ) = ∫ p(yᵢ | fᵢ) 𝓝(fᵢ; μᵢ, σᵢ²) dfᵢ

        :param f_means: The latent means :math:`μᵢ`, with shape ``[N]``.
        :param f_vars: The latent variances :math:`σᵢ²`, with shape ``[N]``.
        :return: The predictive means and variances, each with shape ``[N]``.
        """
        raise NotImplementedError

    @abstractmethod
    def predict_log_density(
        self, f_means: TensorType, f_vars: TensorType, observations: TensorType
    ) -> tf.Tensor:
        """
        Compute the log predictive density of each observation:

        .. math:: log ∫ p(yᵢ | fᵢ) 𝓝(fᵢ; μᵢ, σᵢ²) dfᵢ

        :param f_means: The latent means :math:`μᵢ`, with shape ``[N]``.
        :param f_vars: The latent variances :math:`σᵢ²`, with shape ``[N]``.
        :param observations: The observations :math:`yᵢ`, with shape ``[N]``.
        :return: A tensor with shape ``[N]``.
        """
        raise NotImplementedError


@tf_scope_class_decorator
class Gaussian(Likelihood):
    """
    The Gaussian likelihood :math:`p(yᵢ | fᵢ) = 𝓝(yᵢ; fᵢ, σ²)` with a trainable noise
    variance :math:`σ²`.
    """

    is_gaussian = True

    def __init__(self, variance: TensorType = 1.0):
        """
        :param variance: The (strictly positive) noise variance :math:`σ²`.
        :raises ValueError: If a concrete variance is not strictly positive.
        """
        super().__init__(self.__class__.__name__)
        if isinstance(variance, (int, float)) and not variance > 0:
            raise ValueError(f"noise variance must be strictly positive, got {variance}")
        self.variance = gpflow.Parameter(variance, transform=positive())

    def log_prob(self, fs: TensorType, observations: TensorType) -> tf.Tensor:
        """
        Compute :math:`log 𝓝(yᵢ; fᵢ, σ²)` element-wise.

        :param fs: The latent function values.
        :param observations: The observed values.
        :return: A tensor with the broadcast shape of `fs` and `observations`.
        """
        return gpflow.logdensities.gaussian(observations, fs, self.variance)

    def variational_expectations(
        self, f_means: TensorType, f_vars: TensorType, observations: TensorType
    ) -> tf.Tensor:
        """
        Compute, in closed form, the expected log density of each observation:

        .. math::
            E_{𝓝(fᵢ; μᵢ, vᵢ)}[log 𝓝(yᵢ; fᵢ, σ²)] = -½ log(2πσ²) - ((yᵢ - μᵢ)² + vᵢ) / 2σ²

        :param f_means: The latent means :math:`μᵢ`, with shape ``[N]``.
        :param f_vars: The latent variances :math:`vᵢ`, with shape ``[N]``.
        :param observations: The observations :math:`yᵢ`, with shape ``[N]``.
        :return: A tensor with shape ``[N]``.
        """
        check_input_shapes(f_means, f_vars, observations)
        variance = tf.convert_to_tensor(self.variance)
        return -0.5 * (
            tf.math.log(2.0 * np.pi * variance)
            + (tf.square(observations - f_means) + f_vars) / variance
        )

    def predict_mean_and_var(
        self, f_means: TensorType, f_vars: TensorType
    ) -> Tuple[tf.Tensor, tf.Tensor]:
        """
        Add the noise variance to the latent variances.

        :param f_means: The latent means, with shape ``[N]``.
        :param f_vars: The latent variances, with shape ``[N]``.
        :return: The predictive means and variances, each with shape ``[N]``.
        """
        return tf.identity(f_means), f_vars + self.variance

    def predict_log_density(
        self, f_means: TensorType, f_vars: TensorType, observations: TensorType
    ) -> tf.Tensor:
        """
        Compute :math:`log 𝓝(yᵢ; μᵢ, σᵢ² + σ²)`.

        :param f_means: The latent means, with shape ``[N]``.
        :param f_vars: The latent variances, with shape ``[N]``.
        :param observations: The observations, with shape ``[N]``.
        :return: A tensor with shape ``[N]``.
        """
        check_input_shapes(f_means, f_vars, observations)
        return gpflow.logdensities.gaussian(observations, f_means, f_vars + self.variance)

    def add_noise(self, f_covariance: TensorType) -> tf.Tensor:
        """
        Add the noise variance to the diagonal of a full latent covariance.

        :param f_covariance: A tensor with shape ``[N, N]``.
        :return: A tensor with shape ``[N, N]``.
        """
        f_covariance = tf.convert_to_tensor(f_covariance)
        variance = tf.cast(self.variance, f_covariance.dtype)
        return tf.linalg.set_diag(f_covariance, tf.linalg.diag_part(f_covariance) + variance)


@tf_scope_fn_decorator
def check_input_shapes(
    f_means: TensorType, f_vars: TensorType, observations: TensorType = None
) -> None:
    """
    Check that the shapes of inputs to likelihood methods are valid.

    :param f_means: A tensor with shape ``[num_data]``.
    :param f_vars: A tensor with shape ``[num_data]``.
    :param observations: A tensor with shape ``[num_data]``.
    """
    shape_list = [(f_means, ("num_data",)), (f_vars, ("num_data",))]
    if observations is not None:
        shape_list.append((observations, ("num_data",)))
    tf.debugging.assert_shapes(shape_list)
