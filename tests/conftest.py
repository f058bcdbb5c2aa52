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
import random

import numpy as np
import pytest
import tensorflow as tf
import gpflow

DEFAULT_SEED = 71892305


@pytest.fixture
def with_tf_random_seed():
    """
    Sets a random seed in Python, NumPy and TensorFlow, so that tests drawing random data
    are deterministic.
    """
    random.seed(DEFAULT_SEED)
    np.random.seed(DEFAULT_SEED)
    tf.random.set_seed(DEFAULT_SEED)


@pytest.fixture(name="kernel")
def _kernel_fixture():
    return gpflow.kernels.SquaredExponential(lengthscales=0.8, variance=1.3)


@pytest.fixture(name="num_inducing", params=[1, 3, 7])
def _num_inducing_fixture(request):
    return request.param


@pytest.fixture(name="num_data", params=[1, 5, 20])
def _num_data_fixture(request):
    return request.param
