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
Module containing the Gaussian distributions over the inducing values :math:`u = f(Z)`.

Both distributions are parameterised by a mean and a lower triangular square root of the
covariance, and are cheap views over tensors owned by a model: they are rebuilt on every
evaluation of the objective rather than cached.
"""

import tensorflow as tf
import tensorflow_probability as tfp

from svgpflow.base import Seed, TensorType
from svgpflow.prior import GaussianProcessPrior
from svgpflow.utils import add_jitter, check_jitter, tf_scope_class_decorator, to_stateless_seed


@tf_scope_class_decorator
class CholeskyGaussian:
    """
    A multivariate normal :math:`𝓝(μ, LLᵀ)` represented by its mean :math:`μ` and a lower
    triangular factor :math:`L`. The covariance is only materialised by :meth:`covariance`.
    """

    def __init__(self, mean: TensorType, scale_tril: TensorType) -> None:
        """
        :param mean: The mean, with shape ``[M]``.
        :param scale_tril: The lower triangular square root of the covariance, with shape
            ``[M, M]``. Entries above the diagonal are ignored.
        :raises ValueError: If the dimensions of the mean and square root do not match.
        """
        mean = tf.convert_to_tensor(mean)
        scale_tril = tf.convert_to_tensor(scale_tril, dtype=mean.dtype)

        if mean.shape.ndims is not None and mean.shape.ndims != 1:
            raise ValueError(f"mean must be a vector, got shape {mean.shape}")
        if scale_tril.shape.ndims is not None and scale_tril.shape.ndims != 2:
            raise ValueError(f"scale_tril must be a matrix, got shape {scale_tril.shape}")
        if mean.shape.ndims is not None and scale_tril.shape.ndims is not None:
            known_dims = {mean.shape[0], *scale_tril.shape} - {None}
            if len(known_dims) > 1:
                raise ValueError(
                    f"mean of shape {mean.shape} does not match square root of shape "
                    f"{scale_tril.shape}"
                )
        tf.debugging.assert_shapes(
            [(mean, ("M",)), (scale_tril, ("M", "M"))],
            message="mean and covariance square root must share the dimension M",
        )

        self._mean = mean
        self._scale_tril = tf.linalg.band_part(scale_tril, -1, 0)

    @property
    def mean(self) -> tf.Tensor:
        """ Return the mean, with shape ``[M]``. """
        return self._mean

    @property
    def scale_tril(self) -> tf.Tensor:
        """ Return the lower triangular square root of the covariance, with shape ``[M, M]``. """
        return self._scale_tril

    @property
    def num_inducing(self) -> tf.Tensor:
        """ Return the dimension :math:`M` of the distribution. """
        return tf.shape(self._mean)[0]

    def covariance(self) -> tf.Tensor:
        """
        Return the dense covariance :math:`LLᵀ`, with shape ``[M, M]``.
        """
        return tf.matmul(self._scale_tril, self._scale_tril, transpose_b=True)

    def log_det_covariance(self) -> tf.Tensor:
        """
        Return :math:`log |LLᵀ| = 2 Σᵢ log Lᵢᵢ`.

        :raises InvalidArgumentError: If a diagonal entry of :math:`L` is not positive.
        """
        diag = tf.linalg.diag_part(self._scale_tril)
        tf.debugging.assert_positive(diag, message="Cholesky factor must have a positive diagonal")
        return 2.0 * tf.reduce_sum(tf.math.log(diag))

    def as_distribution(self) -> tfp.distributions.MultivariateNormalTriL:
        """
        Return the equivalent TensorFlow Probability distribution.
        """
        return tfp.distributions.MultivariateNormalTriL(
            loc=self._mean, scale_tril=self._scale_tril
        )

    def log_pdf(self, values: TensorType) -> tf.Tensor:
        """
        Return the log density evaluated at `values`.

        :param values: A tensor with shape ``sample_shape + [M]``.
        :return: A tensor with shape ``sample_shape``.
        """
        return self.as_distribution().log_prob(values)

    def sample(self, num_samples: int, seed: Seed) -> tf.Tensor:
        """
        Draw reparameterised samples :math:`μ + Lε`, with :math:`ε ~ 𝓝(0, I)`.

        Samples are differentiable with respect to the mean and the square root.

        :param num_samples: The number of samples to draw.
        :param seed: The seed of the stateless random number generator, so that the caller
            controls reproducibility.
        :return: A tensor with shape ``[num_samples, M]``.
        """
        shape = tf.stack([num_samples, self.num_inducing])
        eps = tf.random.stateless_normal(
            shape, seed=to_stateless_seed(seed), dtype=self._mean.dtype
        )
        return self._mean + tf.linalg.matvec(self._scale_tril, eps)


@tf_scope_class_decorator
class VariationalPosterior(CholeskyGaussian):
    """
    The variational distribution over the inducing values:

    .. math:: q(u) = 𝓝(m, AAᵀ)

    ...where :math:`A` is lower triangular. :math:`A` is never inverted: every use of the
    covariance goes through :math:`A` itself or through triangular solves.
    """


@tf_scope_class_decorator
class InducingPrior(CholeskyGaussian):
    """
    The prior over the inducing values, that is the GP prior marginal at the inducing inputs
    :math:`Z`:

    .. math:: p(u) = 𝓝(μ(Z), K_zz + εI) = 𝓝(μ(Z), L_zz L_zzᵀ)

    ...where :math:`ε` is a small positive jitter that keeps the Cholesky factorisation of the
    covariance numerically valid.
    """

    def __init__(self, mean: TensorType, scale_tril: TensorType, jitter: TensorType) -> None:
        """
        :param mean: The prior mean at the inducing inputs, with shape ``[M]``.
        :param scale_tril: The Cholesky factor :math:`L_zz`, with shape ``[M, M]``.
        :param jitter: The jitter that was added to the diagonal before factorising.
        """
        super().__init__(mean, scale_tril)
        self._jitter = jitter

    @property
    def jitter(self) -> TensorType:
        """ Return the jitter added to the diagonal of the prior covariance. """
        return self._jitter

    @classmethod
    def from_prior(
        cls,
        prior: GaussianProcessPrior,
        inducing_inputs: TensorType,
        jitter: TensorType,
    ) -> "InducingPrior":
        """
        Evaluate the GP prior at the inducing inputs and factorise its covariance.

        :param prior: The GP prior.
        :param inducing_inputs: The inducing inputs :math:`Z`, with shape ``[M, input_dim]``.
        :param jitter: A strictly positive scalar added to the diagonal of :math:`K_zz`.
        :raises ValueError: If the jitter is not strictly positive.
        :raises InvalidArgumentError: If :math:`K_zz + εI` is not positive definite. This
            signals insufficient jitter or degenerate kernel hyperparameters, and is not retried.
        """
        check_jitter(jitter)
        mean, covariance = prior.evaluate_prior(inducing_inputs)
        chol = tf.linalg.cholesky(add_jitter(covariance, jitter))
        # cholesky reports failure through NaNs on some devices
        tf.debugging.assert_all_finite(
            chol, message="Cholesky factorisation of the inducing prior covariance failed"
        )
        return cls(mean, chol, jitter)

    def covariance(self, include_jitter: bool = True) -> tf.Tensor:
        """
        Return the dense prior covariance, with shape ``[M, M]``.

        :param include_jitter: Whether to include the jitter on the diagonal.
        """
        covariance = super().covariance()
        if include_jitter:
            return covariance
        jitter = tf.cast(self._jitter, covariance.dtype)
        return tf.linalg.set_diag(covariance, tf.linalg.diag_part(covariance) - jitter)

