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
Module containing the non-Gaussian likelihoods.

These wrap a GPflow :class:`~gpflow.likelihoods.ScalarLikelihood`, which owns the link function,
the log density and the quadrature used for predictions, and present it with the
one-dimensional ``[N]`` shapes used throughout Svgpflow.
"""
from typing import Callable, Optional, Tuple

import gpflow
import tensorflow as tf
from gpflow.likelihoods.utils import inv_probit

from svgpflow.base import TensorType
from svgpflow.likelihoods.likelihoods import Likelihood, check_input_shapes
from svgpflow.utils import tf_scope_class_decorator


@tf_scope_class_decorator
class ScalarLikelihood(Likelihood):
    """
    A likelihood where :math:`p(yᵢ | fᵢ)` is any GPflow scalar likelihood. Expectations under a
    Gaussian :math:`q(fᵢ)` are computed by GPflow, in closed form where it has one and with
    Gauss-Hermite quadrature otherwise.

    Latent values passed to :meth:`log_prob` may carry leading sample dimensions; they are
    broadcast against the observations before being handed to GPflow.
    """

    def __init__(self, likelihood: gpflow.likelihoods.ScalarLikelihood):
        """
        :param likelihood: The GPflow likelihood to wrap.
        :raises ValueError: If `likelihood` is not a GPflow scalar likelihood.
        """
        super().__init__(self.__class__.__name__)
        if not isinstance(likelihood, gpflow.likelihoods.ScalarLikelihood):
            raise ValueError(
                f"expected a gpflow.likelihoods.ScalarLikelihood, got {likelihood!r}"
            )
        self.gpflow_likelihood = likelihood

    def log_prob(self, fs: TensorType, observations: TensorType) -> tf.Tensor:
        fs = tf.convert_to_tensor(fs)
        observations = tf.convert_to_tensor(observations, dtype=fs.dtype)
        shape = tf.broadcast_dynamic_shape(tf.shape(fs), tf.shape(observations))
        return self.gpflow_likelihood.log_prob(
            None,
            tf.broadcast_to(fs, shape)[..., None],
            tf.broadcast_to(observations, shape)[..., None],
        )

    def predict_mean_and_var(
        self, f_means: TensorType, f_vars: TensorType
    ) -> Tuple[tf.Tensor, tf.Tensor]:
        """
        :param f_means: The latent means, with shape ``[N]``.
        :param f_vars: The latent variances, with shape ``[N]``.
        :return: The predictive means and variances, each with shape ``[N]``.
        """
        check_input_shapes(f_means, f_vars)
        f_means = tf.convert_to_tensor(f_means)
        f_vars = tf.convert_to_tensor(f_vars, dtype=f_means.dtype)
        mean, var = self.gpflow_likelihood.predict_mean_and_var(
            None, f_means[:, None], f_vars[:, None]
        )
        return mean[:, 0], var[:, 0]

    def predict_log_density(
        self, f_means: TensorType, f_vars: TensorType, observations: TensorType
    ) -> tf.Tensor:
        """
        :param f_means: The latent means, with shape ``[N]``.
        :param f_vars: The latent variances, with shape ``[N]``.
        :param observations: The observations, with shape ``[N]``.
        :return: A tensor with shape ``[N]``.
        """
        check_input_shapes(f_means, f_vars, observations)
        f_means = tf.convert_to_tensor(f_means)
        f_vars = tf.convert_to_tensor(f_vars, dtype=f_means.dtype)
        observations = tf.convert_to_tensor(observations, dtype=f_means.dtype)
        return self.gpflow_likelihood.predict_log_density(
            None, f_means[:, None], f_vars[:, None], observations[:, None]
        )


class Bernoulli(ScalarLikelihood):
    """
    The Bernoulli likelihood :math:`p(yᵢ = 1 | fᵢ) = g(fᵢ)` for binary observations
    :math:`yᵢ ∈ {0, 1}`, with a probit link by default.
    """

    def __init__(self, invlink: Callable[[tf.Tensor], tf.Tensor] = inv_probit, **kwargs):
        super().__init__(gpflow.likelihoods.Bernoulli(invlink=invlink, **kwargs))


class Poisson(ScalarLikelihood):
    """
    The Poisson likelihood :math:`p(yᵢ | fᵢ) = Poisson(yᵢ; g(fᵢ))` for counts, with an
    exponential link by default.
    """

    def __init__(self, invlink: Callable[[tf.Tensor], tf.Tensor] = tf.exp, **kwargs):
        super().__init__(gpflow.likelihoods.Poisson(invlink=invlink, **kwargs))


class _CallableScalarLikelihood(gpflow.likelihoods.ScalarLikelihood):
    """ A GPflow scalar likelihood built from plain functions of the latent values. """

    def __init__(
        self,
        log_density: Callable[[tf.Tensor, tf.Tensor], tf.Tensor],
        conditional_mean: Optional[Callable[[tf.Tensor], tf.Tensor]],
        conditional_variance: Optional[Callable[[tf.Tensor], tf.Tensor]],
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.log_density = log_density
        self.mean_fn = conditional_mean
        self.variance_fn = conditional_variance

    def _scalar_log_prob(self, X, F, Y):
        return self.log_density(F, Y)

    def _conditional_mean(self, X, F):
        if self.mean_fn is None:
            raise NotImplementedError("no conditional_mean was given to this likelihood")
        return self.mean_fn(F)

    def _conditional_variance(self, X, F):
        if self.variance_fn is None:
            raise NotImplementedError("no conditional_variance was given to this likelihood")
        return self.variance_fn(F)


class LogDensityLikelihood(ScalarLikelihood):
    """
    A likelihood defined by an arbitrary element-wise log density :math:`log p(yᵢ | fᵢ)`.

    Only the log density is required; supply `conditional_mean` and `conditional_variance` to
    enable predictions in observation space.
    """

    def __init__(
        self,
        log_density: Callable[[tf.Tensor, tf.Tensor], tf.Tensor],
        conditional_mean: Optional[Callable[[tf.Tensor], tf.Tensor]] = None,
        conditional_variance: Optional[Callable[[tf.Tensor], tf.Tensor]] = None,
        **kwargs,
    ):
        """
        :param log_density: A function ``(fs, observations) -> log p(observations | fs)``,
            evaluated element-wise with broadcasting.
        :param conditional_mean: An optional function ``fs -> E[y | fs]``.
        :param conditional_variance: An optional function ``fs -> Var[y | fs]``.
        :param kwargs: Passed to :class:`gpflow.likelihoods.ScalarLikelihood`, for example a
            ``quadrature`` rule for the predictions.
        """
        super().__init__(
            _CallableScalarLikelihood(
                log_density, conditional_mean, conditional_variance, **kwargs
            )
        )
