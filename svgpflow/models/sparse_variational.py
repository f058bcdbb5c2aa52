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
"""Module containing a model for sparse variational inference, for use with large data sets."""
import logging
from typing import Optional, Tuple, Union

import tensorflow as tf
from gpflow.base import Parameter
from gpflow.config import default_float, default_jitter
from gpflow.kernels import Kernel
from gpflow.utilities import triangular

from svgpflow.base import Seed, TensorType
from svgpflow.elbo import ELBOTerms
from svgpflow.elbo import elbo_terms as compute_elbo_terms
from svgpflow.gaussian import InducingPrior, VariationalPosterior
from svgpflow.kl import kl_divergence
from svgpflow.likelihoods import Gaussian, Likelihood
from svgpflow.mean_function import MeanFunction
from svgpflow.models.models import SVGPModelBase
from svgpflow.posterior import SparseVariationalPosterior
from svgpflow.prior import GaussianProcessPrior
from svgpflow.quadrature import QuadratureStrategy, get_quadrature
from svgpflow.utils import check_jitter

logger = logging.getLogger(__name__)


def _check_static_shape(name: str, value: tf.Tensor, expected: Tuple[int, ...]) -> None:
    if value.shape.rank != len(expected) or any(
        known is not None and known != size for known, size in zip(value.shape, expected)
    ):
        raise ValueError(f"{name} must have shape {list(expected)}, got {value.shape}")


class SparseVariationalGaussianProcess(SVGPModelBase):
    """
    Approximate a GP posterior with a general likelihood using a Gaussian distribution
    over a set of inducing values. The inducing values represent the distribution over a
    typically much larger number of data points.

    The following notation is used:

        * :math:`X` - the inputs of the training data
        * :math:`Z` - the inducing inputs
        * :math:`y` - observations corresponding to inputs :math:`X`
        * :math:`u = f(Z)` - the inducing values
        * :math:`p(y | f)` - the likelihood
        * :math:`p(.)` - the prior
        * :math:`q(.)` - the variational distribution, with :math:`q(u) = 𝓝(m, AAᵀ)`

    The model maximises the evidence lower bound:

    .. math::
        &log p(y) >= ℒ(q)

        &ℒ(q) = Σᵢ ∫ log(p(yᵢ | fᵢ)) q(fᵢ) dfᵢ - KL[q(u) ‖ p(u)]

    ...where :math:`q(f) = ∫ p(f | u) q(u) du`. The first term, the expected log likelihood,
    is computed by a :class:`~svgpflow.quadrature.QuadratureStrategy`. It is rescaled by
    :math:`N / |b|` when evaluated on a minibatch :math:`b` of a dataset of size :math:`N`.

    The key reference is::

      @inproceedings{hensman2015scalable,
          title={Scalable Variational Gaussian Process Classification},
          author={Hensman, James and Matthews, Alexander G. de G. and Ghahramani, Zoubin},
          booktitle={Proceedings of AISTATS},
          year={2015}
      }

    .. note:: Since this class extends :class:`~svgpflow.models.models.SVGPModelBase`,
       it does not depend on input data. Input data is passed to :meth:`loss` as a tuple of
       inputs and observations.
    """

    def __init__(
        self,
        kernel: Kernel,
        likelihood: Optional[Likelihood],
        inducing_points: TensorType,
        *,
        mean_function: Optional[MeanFunction] = None,
        q_mu: Optional[TensorType] = None,
        q_sqrt: Optional[TensorType] = None,
        jitter: Optional[float] = None,
        num_data: Optional[int] = None,
        quadrature: Union[None, str, QuadratureStrategy] = None,
        train_inducing_points: bool = True,
    ) -> None:
        """
        :param kernel: A kernel that defines a prior over functions.
        :param likelihood: A likelihood. If `None`, a Gaussian likelihood with variance equal to
            the jitter is used, which makes the model interpolate the data.
        :param inducing_points: The inducing inputs :math:`Z`, with shape
            ``[num_inducing, input_dim]``.
        :param mean_function: The mean function for the GP. Defaults to no mean function.
        :param q_mu: An initial variational mean, with shape ``[num_inducing]``. Defaults to
            zeros.
        :param q_sqrt: An initial lower triangular square root of the variational covariance,
            with shape ``[num_inducing, num_inducing]``. Defaults to the identity.
        :param jitter: The positive value added to the diagonal of the inducing prior covariance.
            Defaults to :func:`gpflow.config.default_jitter`.
        :param num_data: The total number of observations
            (relevant when feeding in external minibatches).
        :param quadrature: The strategy, or its name, that computes the expected log
            likelihood. Defaults to :class:`~svgpflow.quadrature.DefaultQuadrature`.
        :param train_inducing_points: Whether the inducing inputs are trainable.
        :raises ValueError: If the parameter shapes do not match, the jitter or `num_data` is
            not positive, or the quadrature does not support the likelihood.
        """
        super().__init__(self.__class__.__name__)

        if jitter is None:
            jitter = default_jitter()
        check_jitter(jitter)
        self._jitter = jitter

        if num_data is not None and (isinstance(num_data, bool) or not num_data > 0):
            raise ValueError(f"num_data must be a positive integer, got {num_data!r}")
        self.num_data = num_data

        inducing_points = tf.cast(inducing_points, default_float())
        if inducing_points.shape.rank != 2:
            raise ValueError(
                f"inducing_points must have shape [num_inducing, input_dim], "
                f"got {inducing_points.shape}"
            )
        num_inducing = inducing_points.shape[0]

        if q_mu is None:
            q_mu = tf.zeros((num_inducing,), dtype=default_float())
        q_mu = tf.cast(q_mu, default_float())
        _check_static_shape("q_mu", q_mu, (num_inducing,))

        if q_sqrt is None:
            q_sqrt = tf.eye(num_inducing, dtype=default_float())
        q_sqrt = tf.cast(q_sqrt, default_float())
        _check_static_shape("q_sqrt", q_sqrt, (num_inducing, num_inducing))

        if likelihood is None:
            likelihood = Gaussian(variance=jitter)
        self._likelihood = likelihood

        self.quadrature = get_quadrature(quadrature)
        self.quadrature.validate(likelihood)

        # To collect kernel and mean function gpflow.Module trainable_variables
        self._prior = GaussianProcessPrior(kernel, mean_function)

        self.inducing_points = Parameter(inducing_points, trainable=train_inducing_points)
        self.q_mu = Parameter(q_mu)
        self.q_sqrt = Parameter(q_sqrt, transform=triangular())

        logger.debug(
            "Built %s with %d inducing points, jitter %s and %r",
            self.__class__.__name__,
            num_inducing,
            jitter,
            self.quadrature,
        )

    @property
    def kernel(self) -> Kernel:
        """
        Return the kernel of the GP.
        """
        return self._prior.kernel

    @property
    def likelihood(self) -> Likelihood:
        """
        Return the likelihood of the GP.
        """
        return self._likelihood

    @property
    def mean_function(self) -> MeanFunction:
        """
        Return the mean function of the GP.
        """
        return self._prior.mean_function

    @property
    def prior(self) -> GaussianProcessPrior:
        """
        Return the GP prior.
        """
        return self._prior

    @property
    def jitter(self) -> TensorType:
        """
        Return the jitter added to the diagonal of the inducing prior covariance.
        """
        return self._jitter

    @property
    def inducing_prior(self) -> InducingPrior:
        """
        Return the prior :math:`p(u)` at the inducing inputs, for the current parameter values.
        """
        return InducingPrior.from_prior(self._prior, self.inducing_points, self._jitter)

    @property
    def variational_posterior(self) -> VariationalPosterior:
        """
        Return the variational distribution :math:`q(u)`, for the current parameter values.
        """
        return VariationalPosterior(self.q_mu, self.q_sqrt)

    def elbo_terms(
        self,
        input_data: Tuple[tf.Tensor, tf.Tensor],
        num_data: Optional[int] = None,
        seed: Optional[Seed] = None,
    ) -> ELBOTerms:
        """
        Compute the terms of the evidence lower bound (ELBO).

        :param input_data: A tuple of inputs and observations containing the (mini)batch of data:

            * A tensor of inputs with shape ``[batch_size, input_dim]``
            * A tensor of observations with shape ``[batch_size]`` or ``[batch_size, 1]``

        :param num_data: The size of the full dataset; overrides the value given at
            construction.
        :param seed: A seed for stochastic quadrature.
        :return: The expected log likelihood, KL divergence and minibatch scale.
        """
        X, Y = input_data
        return compute_elbo_terms(
            self._prior,
            self.inducing_points,
            self.inducing_prior,
            self.variational_posterior,
            self._likelihood,
            self.quadrature,
            X,
            Y,
            num_data=self.num_data if num_data is None else num_data,
            seed=seed,
        )

    def elbo(
        self,
        input_data: Tuple[tf.Tensor, tf.Tensor],
        num_data: Optional[int] = None,
        seed: Optional[Seed] = None,
    ) -> tf.Tensor:
        """
        Calculates the evidence lower bound (ELBO) of :math:`log p(y)`:

        .. math:: ℒ(q) = (N / |b|) Σᵢ∈b ∫ log(p(yᵢ | fᵢ)) q(fᵢ) dfᵢ - KL[q(u) ‖ p(u)]

        :param input_data: A tuple of inputs and observations; see :meth:`elbo_terms`.
        :param num_data: The size of the full dataset; overrides the value given at
            construction.
        :param seed: A seed for stochastic quadrature.
        :return: A scalar tensor.
        """
        return self.elbo_terms(input_data, num_data=num_data, seed=seed).elbo

    def loss(
        self,
        input_data: Tuple[tf.Tensor, tf.Tensor],
        num_data: Optional[int] = None,
        seed: Optional[Seed] = None,
    ) -> tf.Tensor:
        """
        Return the loss, which is the negative evidence lower bound (ELBO).

        :param input_data: A tuple of inputs and observations; see :meth:`elbo_terms`.
        :param num_data: The size of the full dataset; overrides the value given at
            construction.
        :param seed: A seed for stochastic quadrature.
        """
        return -self.elbo(input_data, num_data=num_data, seed=seed)

    def prior_kl(self) -> tf.Tensor:
        """
        Return :math:`KL[q(u) ‖ p(u)]`.
        """
        return kl_divergence(self.variational_posterior, self.inducing_prior)

    def _build_posterior(self, include_likelihood: bool) -> SparseVariationalPosterior:
        return SparseVariationalPosterior(
            self._prior,
            self.q_mu,
            self.q_sqrt,
            self.inducing_points,
            self._jitter,
            likelihood=self._likelihood,
            include_likelihood=include_likelihood,
        )

    @property
    def posterior(self) -> SparseVariationalPosterior:
        """
        Obtain a posterior process over the latent function.

        For this class this is the :class:`~svgpflow.posterior.SparseVariationalPosterior`
        built from the variational distribution. This will be a locally optimal
        variational approximation of the posterior after optimisation.
        """
        return self._build_posterior(include_likelihood=False)

    def predictive_posterior(self) -> SparseVariationalPosterior:
        """
        Obtain a posterior process whose call returns predictions of the observations rather
        than of the latent function.
        """
        return self._build_posterior(include_likelihood=True)
