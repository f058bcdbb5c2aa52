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
Module containing the interchangeable schemes that compute the expected log likelihood:

.. math:: E_{q(fᵢ)}[log p(yᵢ | fᵢ)],   q(fᵢ) = 𝓝(μᵢ, σᵢ²)

...of every data point, which is the data term of the evidence lower bound.

Three strategies are available:

    * :class:`Analytic` - closed form, for the :class:`~svgpflow.likelihoods.Gaussian`
      likelihood only
    * :class:`GaussHermite` - deterministic quadrature, for any likelihood
    * :class:`MonteCarlo` - reparameterised sampling, for any likelihood. The estimate carries
      sampling noise that shrinks as :math:`O(1/√S)` in the number of samples :math:`S`.

:class:`DefaultQuadrature` picks :class:`Analytic` whenever it is valid and
:class:`GaussHermite` otherwise.
"""
import abc
from typing import Optional, Union

import tensorflow as tf

from svgpflow.base import Seed, TensorType
from svgpflow.gauss_hermite import check_num_points, gauss_hermite_expectation
from svgpflow.likelihoods import Likelihood
from svgpflow.likelihoods.likelihoods import check_input_shapes
from svgpflow.utils import tf_scope_class_decorator, to_stateless_seed


class QuadratureStrategy(abc.ABC):
    """
    Abstract class for the computation of expected log likelihoods under Gaussian marginals.

    Strategies are stateless (beyond their configuration) and can be shared between models.
    """

    def validate(self, likelihood: Likelihood) -> None:
        """
        Check that this strategy can be used with `likelihood`.

        :raises ValueError: If the strategy does not support the likelihood.
        """

    @abc.abstractmethod
    def _expectations(
        self,
        likelihood: Likelihood,
        f_means: tf.Tensor,
        f_vars: tf.Tensor,
        observations: tf.Tensor,
        seed: Optional[Seed],
    ) -> tf.Tensor:
        """ Compute the per-datum expectations of validated inputs. """

    def expectations(
        self,
        likelihood: Likelihood,
        f_means: TensorType,
        f_vars: TensorType,
        observations: TensorType,
        *,
        seed: Optional[Seed] = None,
    ) -> tf.Tensor:
        """
        Compute :math:`E_{𝓝(fᵢ; μᵢ, σᵢ²)}[log p(yᵢ | fᵢ)]` for every data point.

        :param likelihood: The likelihood :math:`p(y | f)`.
        :param f_means: The marginal means :math:`μᵢ`, with shape ``[N]``.
        :param f_vars: The marginal variances :math:`σᵢ²`, with shape ``[N]``.
        :param observations: The observations :math:`yᵢ`, with shape ``[N]``.
        :param seed: A seed for stochastic strategies; ignored by deterministic ones.
        :return: A tensor with shape ``[N]``.
        :raises ValueError: If the strategy does not support the likelihood.
        """
        self.validate(likelihood)
        f_means = tf.convert_to_tensor(f_means)
        f_vars = tf.convert_to_tensor(f_vars, dtype=f_means.dtype)
        observations = tf.convert_to_tensor(observations, dtype=f_means.dtype)
        check_input_shapes(f_means, f_vars, observations)
        return self._expectations(likelihood, f_means, f_vars, observations, seed)

    def expected_log_likelihood(
        self,
        likelihood: Likelihood,
        f_means: TensorType,
        f_vars: TensorType,
        observations: TensorType,
        *,
        seed: Optional[Seed] = None,
    ) -> tf.Tensor:
        """
        Sum (not average) the per-datum expectations of :meth:`expectations` over the data.

        :return: A scalar tensor.
        """
        return tf.reduce_sum(
            self.expectations(likelihood, f_means, f_vars, observations, seed=seed)
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


@tf_scope_class_decorator
class Analytic(QuadratureStrategy):
    """
    The closed form expectation of the Gaussian log density:

    .. math:: E[log 𝓝(yᵢ; fᵢ, σ²)] = -½ log(2πσ²) - ((yᵢ - μᵢ)² + σᵢ²) / 2σ²
    """

    def validate(self, likelihood: Likelihood) -> None:
        """
        :raises ValueError: If the likelihood is not Gaussian.
        """
        if not likelihood.is_gaussian:
            raise ValueError(
                f"Analytic quadrature requires a Gaussian likelihood, "
                f"got {likelihood.__class__.__name__}"
            )

    def _expectations(self, likelihood, f_means, f_vars, observations, seed):
        return likelihood.variational_expectations(f_means, f_vars, observations)


@tf_scope_class_decorator
class GaussHermite(QuadratureStrategy):
    """
    Gauss-Hermite quadrature: each marginal is mapped onto the nodes :math:`xⱼ` as
    :math:`fᵢⱼ = μᵢ + √2 σᵢ xⱼ`, and the log densities are summed with weights
    :math:`wⱼ/√π`.

    The nodes and weights of each order are computed once for the whole process by
    :func:`~svgpflow.gauss_hermite.gauss_hermite_nodes`.
    """

    def __init__(self, num_points: int = 20):
        """
        :param num_points: The number of quadrature nodes.
        :raises ValueError: If `num_points` is not a positive integer.
        """
        self.num_points = check_num_points(num_points)

    def _expectations(self, likelihood, f_means, f_vars, observations, seed):
        return gauss_hermite_expectation(
            lambda fs: likelihood.log_prob(fs, observations), f_means, f_vars, self.num_points
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(num_points={self.num_points})"


@tf_scope_class_decorator
class MonteCarlo(QuadratureStrategy):
    """
    Monte Carlo estimation with reparameterised samples :math:`fᵢₛ = μᵢ + σᵢ εᵢₛ`, where
    :math:`εᵢₛ ~ 𝓝(0, 1)`:

    .. math:: E[log p(yᵢ | fᵢ)] ≈ 1/S Σₛ log p(yᵢ | fᵢₛ)

    Randomness comes only from TensorFlow's stateless random operations, seeded either by the
    seed given at construction or by a seed passed to :meth:`expectations`. For a fixed seed
    the estimate is reproducible, and it is differentiable with respect to the marginals.
    """

    def __init__(self, num_samples: int = 20, seed: Seed = 0):
        """
        :param num_samples: The number of samples :math:`S` per data point.
        :param seed: The default seed, used when no seed is passed at call time.
        :raises ValueError: If `num_samples` is not a positive integer.
        """
        self.num_samples = check_num_points(num_samples, "num_samples")
        self.seed = seed

    def _expectations(self, likelihood, f_means, f_vars, observations, seed):
        seed = to_stateless_seed(self.seed if seed is None else seed)
        shape = tf.stack([self.num_samples, tf.shape(f_means)[0]])
        eps = tf.random.stateless_normal(shape, seed=seed, dtype=f_means.dtype)
        fs = f_means + tf.sqrt(f_vars) * eps  # [num_samples, N]
        return tf.reduce_mean(likelihood.log_prob(fs, observations), axis=0)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(num_samples={self.num_samples}, seed={self.seed})"


@tf_scope_class_decorator
class DefaultQuadrature(QuadratureStrategy):
    """
    Use :class:`Analytic` for Gaussian likelihoods and :class:`GaussHermite` otherwise.
    """

    def __init__(self, num_points: int = 20):
        """
        :param num_points: The number of nodes used for non-Gaussian likelihoods.
        """
        self._analytic = Analytic()
        self._gauss_hermite = GaussHermite(num_points)

    def resolve(self, likelihood: Likelihood) -> QuadratureStrategy:
        """
        Return the strategy used for `likelihood`.
        """
        return self._analytic if likelihood.is_gaussian else self._gauss_hermite

    def _expectations(self, likelihood, f_means, f_vars, observations, seed):
        return self.resolve(likelihood).expectations(
            likelihood, f_means, f_vars, observations, seed=seed
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(num_points={self._gauss_hermite.num_points})"


QUADRATURE_NAMES = {
    "default": DefaultQuadrature,
    "analytic": Analytic,
    "gauss-hermite": GaussHermite,
    "monte-carlo": MonteCarlo,
}


def get_quadrature(quadrature: Union[None, str, QuadratureStrategy]) -> QuadratureStrategy:
    """
    Resolve a quadrature strategy from its name.

    :param quadrature: A :class:`QuadratureStrategy`, one of the names in
        :data:`QUADRATURE_NAMES` (with default settings), or `None` for
        :class:`DefaultQuadrature`.
    :raises ValueError: If the name is unknown.
    """
    if quadrature is None:
        return DefaultQuadrature()
    if isinstance(quadrature, QuadratureStrategy):
        return quadrature
    if isinstance(quadrature, str):
        key = quadrature.lower().replace("_", "-")
        if key in QUADRATURE_NAMES:
            return QUADRATURE_NAMES[key]()
        raise ValueError(
            f"Unknown quadrature {quadrature!r}, expected one of {sorted(QUADRATURE_NAMES)}"
        )
    raise ValueError(f"Cannot build a quadrature strategy from {quadrature!r}")
