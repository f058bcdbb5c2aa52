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
"""Module containing the KL divergence between multivariate normal distributions."""
import tensorflow as tf

from svgpflow.base import TensorType
from svgpflow.gaussian import CholeskyGaussian
from svgpflow.utils import tf_scope_fn_decorator


@tf_scope_fn_decorator
def gauss_kl(
    q_mu: TensorType, q_sqrt: TensorType, p_mu: TensorType, p_chol: TensorType
) -> tf.Tensor:
    r"""
    Compute the KL divergence :math:`KL[q ‖ p]` between:

    .. math::
        &q = 𝓝(m, AAᵀ)\\
        &p = 𝓝(μ, LLᵀ)

    ...where :math:`A` and :math:`L` are lower triangular. This is given by:

    .. math::
        KL[q ‖ p] = ½(‖L⁻¹A‖²_F + (μ - m)ᵀL⁻ᵀL⁻¹(μ - m) - M + 2Σᵢ log Lᵢᵢ - 2Σᵢ log Aᵢᵢ)

    Every inverse is a triangular solve against :math:`L`.

    :param q_mu: The mean :math:`m`, with shape ``[M]``.
    :param q_sqrt: The lower triangular :math:`A`, with shape ``[M, M]``.
    :param p_mu: The mean :math:`μ`, with shape ``[M]``.
    :param p_chol: The lower triangular :math:`L`, with shape ``[M, M]``.
    :return: A scalar tensor.
    :raises InvalidArgumentError: If either factor has a non-positive diagonal entry.
    """
    q = CholeskyGaussian(q_mu, q_sqrt)
    p = CholeskyGaussian(p_mu, p_chol)
    tf.debugging.assert_shapes(
        [(q.mean, ("M",)), (p.mean, ("M",))], message="gauss_kl() arguments"
    )

    # L⁻¹(μ - m)
    alpha = tf.linalg.triangular_solve(p.scale_tril, (p.mean - q.mean)[:, None], lower=True)
    mahalanobis = tf.reduce_sum(tf.square(alpha))

    # tr(Σₚ⁻¹Σ_q) = ‖L⁻¹A‖²_F
    p_inv_q_sqrt = tf.linalg.triangular_solve(p.scale_tril, q.scale_tril, lower=True)
    trace = tf.reduce_sum(tf.square(p_inv_q_sqrt))

    num_inducing = tf.cast(q.num_inducing, q.mean.dtype)
    log_det_ratio = p.log_det_covariance() - q.log_det_covariance()

    return 0.5 * (trace + mahalanobis - num_inducing + log_det_ratio)


@tf_scope_fn_decorator
def kl_divergence(q: CholeskyGaussian, p: CholeskyGaussian) -> tf.Tensor:
    """
    Return :math:`KL[q ‖ p]` for two Gaussians held in Cholesky form, typically the
    :class:`~svgpflow.gaussian.VariationalPosterior` and the
    :class:`~svgpflow.gaussian.InducingPrior`.

    The KL divergence is non-negative, zero only when the distributions are the same, and is
    not symmetric in its arguments.

    :param q: The first distribution.
    :param p: The second distribution.
    :return: A scalar tensor.
    """
    return gauss_kl(q.mean, q.scale_tril, p.mean, p.scale_tril)
