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
Module containing base classes for models.

.. note:: Svgpflow models are intended to work with eager mode in TensorFlow. Therefore
   models (and their collaborating objects) should typically avoid performing any
   computation in their `__init__` methods. Because models and other objects are typically
   initialised outside of an optimisation loop, performing computation in the constructor
   means that this computation is performed 'too early', and optimisation is not possible.
"""
from abc import ABC, abstractmethod
from typing import Tuple

import tensorflow as tf
import gpflow

from svgpflow.base import TensorType
from svgpflow.posterior import PosteriorProcess
from svgpflow.utils import tf_scope_class_decorator


def _log_prior_density(module: gpflow.Module) -> tf.Tensor:
    if module.trainable_parameters:
        return tf.add_n([p.log_prior_density() for p in module.trainable_parameters])
    return tf.convert_to_tensor(0.0, gpflow.default_float())


class GPModel(gpflow.Module, ABC):
    """
    Abstract class representing models that hold their training data.

    All models are :class:`GPflow Modules <gpflow.Module>`, so it is possible to obtain
    trainable variables via the :attr:`trainable_variables` attribute and trainable parameters via
    the :attr:`trainable_parameters` attribute. You can combine this with the :meth:`loss` method
    to train the model.

    .. note:: Models that extend this class must implement the :meth:`loss` and
       :meth:`predict_f` methods.
    """

    def log_prior_density(self) -> tf.Tensor:
        """
        Sum of the log prior probability densities of all (constrained) variables in this model.
        """
        return _log_prior_density(self)

    @abstractmethod
    def loss(self) -> tf.Tensor:
        """
        Obtain the loss, which you can use to train the model.
        It should always return a scalar.

        :raises NotImplementedError: Must be implemented in derived classes.
        """
        raise NotImplementedError()

    @abstractmethod
    def predict_f(
        self, new_inputs: TensorType, full_cov: bool = False
    ) -> Tuple[tf.Tensor, tf.Tensor]:
        """
        Predict the latent function at `new_inputs`.

        :param new_inputs: A tensor with shape ``[num_new, input_dim]``.
        :param full_cov: Either full covariance (`True`) or marginal variances (`False`).
        :return: The mean, with shape ``[num_new]``, and the variances, with shape
            ``[num_new]``, or the covariance, with shape ``[num_new, num_new]``.
        :raises NotImplementedError: Must be implemented in derived classes.
        """
        raise NotImplementedError()


@tf_scope_class_decorator
class SVGPModelBase(gpflow.Module, ABC):
    """
    Abstract class representing models that do not need to store the training
    data (:math:`X, Y`) in the model to approximate the
    posterior predictions :math:`p(f*|X, Y, x*)`.

    The `loss` method should typically be differentiated to train the model. For example::

        input_data = (tf.constant(inputs), tf.constant(observations))
        optimizer = tf.optimizers.Adam(learning_rate=0.01)
        for i in range(iterations):
            with tf.GradientTape() as tape:
                loss = model.loss(input_data)
            grads = tape.gradient(loss, model.trainable_variables)
            optimizer.apply_gradients(zip(grads, model.trainable_variables))

    Call the :meth:`predict_f` method to predict marginal function values at new inputs.
    For example::

        mean, variance = model.predict_f(validation_inputs)

    .. note:: Models that extend this class must implement the :meth:`loss`
       method and :attr:`posterior` attribute.
    """

    def log_prior_density(self) -> tf.Tensor:
        """
        Sum of the log prior probability densities of all (constrained) variables in this model.
        """
        return _log_prior_density(self)

    @abstractmethod
    def loss(self, input_data: Tuple[tf.Tensor, tf.Tensor]) -> tf.Tensor:
        """
        Obtain the loss, which can be used to train the model.

        :param input_data: A tuple of inputs and observations containing the data at which
            to calculate the loss for training the model:

            * A tensor of inputs with shape ``[num_data, input_dim]``
            * A tensor of observations with shape ``[num_data]`` or ``[num_data, 1]``

        :raises NotImplementedError: Must be implemented in derived classes.
        """
        raise NotImplementedError()

    @property
    @abstractmethod
    def posterior(self) -> PosteriorProcess:
        """
        Obtain a posterior process from the model, which can be used for inference.

        :raises NotImplementedError: Must be implemented in derived classes.
        """
        raise NotImplementedError()

    def predict_f(
        self, new_inputs: TensorType, full_cov: bool = False
    ) -> Tuple[tf.Tensor, tf.Tensor]:
        """
        Predict the latent function at `new_inputs`.

        :param new_inputs: A tensor with shape ``[num_new, input_dim]``.
        :param full_cov: Either full covariance (`True`) or marginal variances (`False`).
        :return: The mean, with shape ``[num_new]``, and the variances, with shape
            ``[num_new]``, or the covariance, with shape ``[num_new, num_new]``.
        """
        return self.posterior.predict_f(new_inputs, full_cov)

    def predict_y(
        self, new_inputs: TensorType, full_cov: bool = False
    ) -> Tuple[tf.Tensor, tf.Tensor]:
        """
        Predict the observations at `new_inputs`.

        :param new_inputs: A tensor with shape ``[num_new, input_dim]``.
        :param full_cov: Either full covariance (`True`) or marginal variances (`False`).
        :return: As for :meth:`predict_f`.
        """
        return self.posterior.predict_y(new_inputs, full_cov)

    def predict_log_density(self, input_data: Tuple[tf.Tensor, tf.Tensor]) -> tf.Tensor:
        """
        Compute the log density of the data. That is:

        .. math:: log ∫ p(yᵢ=Yᵢ|Fᵢ)q(Fᵢ) dFᵢ

        :param input_data: A tuple of inputs and observations:

            * A tensor of inputs with shape ``[num_data, input_dim]``
            * A tensor of observations with shape ``[num_data]`` or ``[num_data, 1]``

        :return: Predicted log density at the inputs, with shape ``[num_data]``.
        """
        X, Y = input_data
        return self.posterior.predict_log_density(X, Y)
