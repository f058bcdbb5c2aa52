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
Module containing the conditioning algebra of sparse variational GPs.

Given the inducing prior :math:`p(u) = 𝓝(μ_z, L Lᵀ)` and the variational distribution
:math:`q(u) = 𝓝(m, AAᵀ)`, the approximate posterior at new inputs :math:`X` is:

.. math:: q(f) = ∫ p(f | u) q(u) du

These functions are shared between the evidence lower bound and the posterior, so that both
condition in exactly the same way.
"""
from typing import Optional, Tuple

import tensorflow as tf

from svgpflow.base import TensorType
from svgpflow.gaussian import InducingPrior, VariationalPosterior
from svgpflow.prior import GaussianProcessPrior
from svgpflow.utils import tf_scope_fn_decorator


@tf_scope_fn_decorator
def conditional(
    Kmn: TensorType,
    Lmm: TensorType,
    Knn: TensorType,
    q_mu: TensorType,
    q_sqrt: TensorType,
    *,
    prior_mean_z: Optional[TensorType] = None,
    full_cov: bool = False,
) -> Tuple[tf.Tensor, tf.Tensor]:
    r"""
    Compute the mean and (co)variance of :math:`q(f) = ∫ p(f | u) q(u) du`, where:

    .. math::
        &p(u) = 𝓝(μ_z, LLᵀ)\\
        &p(f | u) = 𝓝(K_nm K_mm⁻¹(u - μ_z), K_nn - K_nm K_mm⁻¹ K_mn)\\
        &q(u) = 𝓝(m, AAᵀ)

    With :math:`B = L⁻¹K_mn` and :math:`C = L⁻ᵀB`, this is:

    .. math::
        &mean = Cᵀ(m - μ_z)\\
        &cov = K_nn - BᵀB + (AᵀC)ᵀ(AᵀC)

    The prior mean at :math:`X` is not included; the caller adds it.

    :param Kmn: The cross covariance :math:`K_mn`, with shape ``[M, N]``.
    :param Lmm: The Cholesky factor :math:`L` of :math:`K_mm` (jitter included), with
        shape ``[M, M]``.
    :param Knn: The prior variances at :math:`X`, with shape ``[N]``, or the prior
        covariance, with shape ``[N, N]`` if `full_cov` is `True`.
    :param q_mu: The variational mean :math:`m`, with shape ``[M]``.
    :param q_sqrt: The lower triangular :math:`A`, with shape ``[M, M]``.
    :param prior_mean_z: The prior mean :math:`μ_z` at the inducing inputs, with
        shape ``[M]``. Defaults to zero.
    :param full_cov: Whether to return the full covariance or only the marginal variances.
    :return: The mean, with shape ``[N]``, and the variances, with shape ``[N]``, or the
        covariance, with shape ``[N, N]``.
    :raises InvalidArgumentError: If a marginal variance is not strictly positive, which
        signals a numerically inconsistent prior (typically insufficient jitter).
    """
    Kmn = tf.convert_to_tensor(Kmn)
    Lmm = tf.convert_to_tensor(Lmm, dtype=Kmn.dtype)
    Knn = tf.convert_to_tensor(Knn, dtype=Kmn.dtype)
    q_mu = tf.convert_to_tensor(q_mu, dtype=Kmn.dtype)
    q_sqrt = tf.linalg.band_part(tf.convert_to_tensor(q_sqrt, dtype=Kmn.dtype), -1, 0)

    shape_constraints = [
        (Kmn, ["M", "N"]),
        (Lmm, ["M", "M"]),
        (Knn, ["N", "N"] if full_cov else ["N"]),
        (q_mu, ["M"]),
        (q_sqrt, ["M", "M"]),
    ]
    if prior_mean_z is not None:
        prior_mean_z = tf.convert_to_tensor(prior_mean_z, dtype=Kmn.dtype)
        shape_constraints.append((prior_mean_z, ["M"]))
    tf.debugging.assert_shapes(shape_constraints, message="conditional() arguments")

    B = tf.linalg.triangular_solve(Lmm, Kmn, lower=True)  # [M, N]
    C = tf.linalg.triangular_solve(Lmm, B, lower=True, adjoint=True)  # [M, N]

    deviation = q_mu if prior_mean_z is None else q_mu - prior_mean_z
    mean = tf.linalg.matvec(C, deviation, transpose_a=True)  # [N]

    AtC = tf.matmul(q_sqrt, C, transpose_a=True)  # [M, N]
    if full_cov:
        cov = (
            Knn
            - tf.matmul(B, B, transpose_a=True)
            + tf.matmul(AtC, AtC, transpose_a=True)
        )
        tf.debugging.assert_positive(
            tf.linalg.diag_part(cov), message="conditional variances must be positive"
        )
        return mean, cov

    var = Knn - tf.reduce_sum(tf.square(B), axis=0) + tf.reduce_sum(tf.square(AtC), axis=0)
    tf.debugging.assert_positive(var, message="conditional variances must be positive")
    return mean, var


@tf_scope_fn_decorator
def sparse_conditional(
    prior: GaussianProcessPrior,
    inducing_inputs: TensorType,
    inducing_prior: InducingPrior,
    variational_posterior: VariationalPosterior,
    inputs: TensorType,
    full_cov: bool = False,
) -> Tuple[tf.Tensor, tf.Tensor]:
    """
    Evaluate the kernel and condition the prior on the inducing values at `inputs`.

    :param prior: The GP prior.
    :param inducing_inputs: The inducing inputs :math:`Z`, with shape ``[M, input_dim]``.
    :param inducing_prior: The prior :math:`p(u)` at :math:`Z`.
    :param variational_posterior: The variational distribution :math:`q(u)`.
    :param inputs: The inputs :math:`X`, with shape ``[N, input_dim]``.
    :param full_cov: Whether to return the full covariance or only the marginal variances.
    :return: The mean of :math:`q(f(X))`, prior mean included, with shape ``[N]``, and
        its variances, with shape ``[N]``, or covariance, with shape ``[N, N]``.
    """
    Kmn = prior.cross_covariance(inducing_inputs, inputs)
    if full_cov:
        _, Knn = prior.evaluate_prior(inputs)
    else:
        Knn = prior.marginal_variances(inputs)
    mean, cov = conditional(
        Kmn,
        inducing_prior.scale_tril,
        Knn,
        variational_posterior.mean,
        variational_posterior.scale_tril,
        prior_mean_z=inducing_prior.mean,
        full_cov=full_cov,
    )
    return prior.mean(inputs) + mean, cov
