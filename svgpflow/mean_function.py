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
"""Module containing mean functions."""
import abc

import tensorflow as tf
import gpflow

from svgpflow.base import TensorType
from svgpflow.utils import tf_scope_class_decorator


@tf_scope_class_decorator
class MeanFunction(gpflow.Module, abc.ABC):
    """
    Abstract class for mean functions.

    Represents the prior mean :math:`μ(x)` of a Gaussian process, so that:

    .. math:: f(.) ~ GP(μ(.), k(., .))

    .. note:: Implementations of this class should typically avoid performing computation
       in their `__init__` method. Performing computation in the constructor conflicts with
       running in TensorFlow's eager mode.
    """

    @abc.abstractmethod
    def __call__(self, inputs: tf.Tensor) -> tf.Tensor:
        """
        Return the mean function evaluated at the given inputs.

        :param inputs: A tensor with shape ``[num_data, input_dim]``.
        :return: The mean function evaluated at the inputs, with shape ``[num_data]``.
        """


@tf_scope_class_decorator
class ZeroMeanFunction(MeanFunction):
    """
    Represents a mean function that is zero everywhere.
    """

    def __init__(self):
        super().__init__(self.__class__.__name__)

    def __call__(self, inputs: tf.Tensor) -> tf.Tensor:
        """
        Return the mean function evaluated at the given inputs.

        :param inputs: A tensor with shape ``[num_data, input_dim]``.
        :return: A tensor of zeros with shape ``[num_data]``.
        """
        return tf.zeros(tf.shape(inputs)[:1], dtype=inputs.dtype)


@tf_scope_class_decorator
class ConstantMeanFunction(MeanFunction):
    """
    Represents a mean function that is constant. That is, where :math:`μ(x) = c`.
    """

    def __init__(self, constant: TensorType = 0.0):
        """
        :param constant: The value of the mean function. This becomes a trainable parameter.
        """
        super().__init__(self.__class__.__name__)
        self.constant = gpflow.Parameter(constant, dtype=gpflow.default_float())

    def __call__(self, inputs: tf.Tensor) -> tf.Tensor:
        """
        Return the mean function evaluated at the given inputs.

        :param inputs: A tensor with shape ``[num_data, input_dim]``.
        :return: The mean function evaluated at the inputs, with shape ``[num_data]``.
        """
        constant = tf.cast(self.constant, inputs.dtype)
        return tf.fill(tf.shape(inputs)[:1], constant)


@tf_scope_class_decorator
class LinearMeanFunction(MeanFunction):
    """
    Represents a mean function that is linear. That is, where :math:`μ(x) = aᵀx + b`.
    """

    def __init__(self, coefficients: TensorType, offset: TensorType = 0.0):
        """
        :param coefficients: The linear coefficients :math:`a`, with shape ``[input_dim]``.
        :param offset: The offset :math:`b`.
        """
        super().__init__(self.__class__.__name__)
        self.coefficients = gpflow.Parameter(coefficients, dtype=gpflow.default_float())
        self.offset = gpflow.Parameter(offset, dtype=gpflow.default_float())

    def __call__(self, inputs: tf.Tensor) -> tf.Tensor:
        """
        Return the mean function evaluated at the given inputs.

        :param inputs: A tensor with shape ``[num_data, input_dim]``.
        :return: The mean function evaluated at the inputs, with shape ``[num_data]``.
        """
        coefficients = tf.reshape(tf.cast(self.coefficients, inputs.dtype), [-1])
        return tf.linalg.matvec(inputs, coefficients) + tf.cast(self.offset, inputs.dtype)
