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
"""Module containing the Gaussian process prior that the sparse models condition."""
from typing import Optional, Tuple

import tensorflow as tf
import gpflow

from svgpflow.base import TensorType
from svgpflow.mean_function import MeanFunction, ZeroMeanFunction
from svgpflow.utils import add_jitter, tf_scope_class_decorator


@tf_scope_class_decorator
class GaussianProcessPrior(gpflow.Module):
    """
    The prior :math:`f(.) ~ GP(μ(.), k(., .))` defined by a GPflow kernel and a mean function.

    This is a thin adapter between the sparse variational machinery and the kernel, which owns
    its own (trainable) hyperparameters. It evaluates the prior on finite sets of inputs:

        * :meth:`evaluate_prior` gives the mean and covariance :math:`μ(X), k(X, X)`
        * :meth:`cross_covariance` gives :math:`k(X₁, X₂)`

    Nothing is cached: every call evaluates the kernel with the current parameter values.
    """

    def __init__(self, kernel: gpflow.kernels.Kernel, mean_function: Optional[MeanFunction] = None):
        """
        :param kernel: A kernel that defines a prior over functions.
        :param mean_function: The mean function of the process. Defaults to zero.
        """
        super().__init__(self.__class__.__name__)
        self.kernel = kernel
        if mean_function is None:
            mean_function = ZeroMeanFunction()
        self.mean_function = mean_function

    def mean(self, inputs: TensorType) -> tf.Tensor:
        """
        :param inputs: A tensor with shape ``[num_data, input_dim]``.
        :return: The prior mean, with shape ``[num_data]``.
        """
        return self.mean_function(tf.convert_to_tensor(inputs))

    def evaluate_prior(
        self, inputs: TensorType, noise_or_jitter: Optional[TensorType] = None
    ) -> Tuple[tf.Tensor, tf.Tensor]:
        """
        Evaluate the prior on a finite set of inputs.

        :param inputs: A tensor with shape ``[num_data, input_dim]``.
        :param noise_or_jitter: An optional positive scalar to add to the diagonal of the
            covariance, either observation noise or jitter.
        :return: The mean and covariance, with respective shapes
            ``[num_data]`` and ``[num_data, num_data]``.
        """
        inputs = tf.convert_to_tensor(inputs)
        covariance = self.kernel(inputs, full_cov=True)
        if noise_or_jitter is not None:
            covariance = add_jitter(covariance, noise_or_jitter)
        return self.mean(inputs), covariance

    def cross_covariance(self, inputs_a: TensorType, inputs_b: TensorType) -> tf.Tensor:
        """
        :param inputs_a: A tensor with shape ``[num_a, input_dim]``.
        :param inputs_b: A tensor with shape ``[num_b, input_dim]``.
        :return: The prior covariance :math:`k(X₁, X₂)`, with shape ``[num_a, num_b]``.
        """
        return self.kernel(tf.convert_to_tensor(inputs_a), tf.convert_to_tensor(inputs_b))

    def marginal_variances(self, inputs: TensorType) -> tf.Tensor:
        """
        :param inputs: A tensor with shape ``[num_data, input_dim]``.
        :return: The prior variances :math:`k(xᵢ, xᵢ)`, with shape ``[num_data]``.
        """
        return self.kernel(tf.convert_to_tensor(inputs), full_cov=False)
