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
Module containing type aliases, attributes and helper functions.

.. autodata:: TensorType
"""
import os
from typing import Tuple, Union

import numpy as np
import tensorflow as tf
from gpflow import Parameter

TensorType = Union[np.ndarray, tf.Tensor, tf.Variable, Parameter]
"""
A type that is either a NumPy array, a TensorFlow :class:`~tf.Tensor`, a TensorFlow
:class:`~tf.Variable`, or a GPflow
`Parameter <https://gpflow.readthedocs.io/en/master/gpflow/index.html#gpflow-parameter>`_.
"""

Seed = Union[int, Tuple[int, int], tf.Tensor]
"""
A seed for TensorFlow's stateless random operations. Either a Python integer or a pair of
integers (shape ``[2]``).
"""

AUTO_NAMESCOPE = "AUTO_NAMESCOPE"
"""
Name of environmental variable which if set enables a well structured TensorFlow graph for
tensorboard debugging. In rare cases may cause issues, and will clutter the stacktrace so off by
default.
"""


def auto_namescope_enabled() -> bool:
    """ Return `True` if autonamescoping is enabled. See the description of AUTO_NAMESCOPE."""
    return True if os.environ.get(AUTO_NAMESCOPE) else False
