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
"""Module containing utility functions."""
from functools import wraps

import numpy as np
import tensorflow as tf

from svgpflow.base import Seed, TensorType, auto_namescope_enabled


def tf_scope_fn_decorator(fn):
    """
    Decorator to wrap the function call in a name_scope
    of the form ".{name of function}".

    The prefix `.` is required because names_scopes cannot be prefixed with `_`.

    Without this some function names (such as private functions) would raise an error.
    """
    if not auto_namescope_enabled():
        return fn

    @wraps(fn)
    def decorated_fn(*args, **kwargs):
        with tf.name_scope(f".{fn.__name__}"):
            return fn(*args, **kwargs)

    return decorated_fn


def tf_scope_class_decorator(cls):
    """
    Decorator to wrap all the methods in a class in a name_scope
    of the form "{name of class}.{name of method}".

    Do not decorate the top level; TensorBoard renders badly if there is only one block.
    """
    if not auto_namescope_enabled():
        return cls

    def decorator(fn, scope_name):
        @wraps(fn)
        def decorated_fn(*args, **kwargs):
            with tf.name_scope(scope_name):
                return fn(*args, **kwargs)

        return decorated_fn

    for maybe_fn_name, maybe_fn in list(cls.__dict__.items()):
        # properties, nested classes and static/class methods are left alone
        if isinstance(maybe_fn, (staticmethod, classmethod, property, type)):
            continue
        if callable(maybe_fn):
            setattr(cls, maybe_fn_name, decorator(maybe_fn, f"{cls.__name__}.{maybe_fn_name}"))
    return cls


def check_jitter(jitter: TensorType) -> None:
    """
    Check that a jitter value is strictly positive.

    Only concrete (Python or NumPy) values are checked here; tensors are checked where they are
    added to a covariance.

    :param jitter: The jitter to check.
    :raises ValueError: If the jitter is not strictly positive.
    """
    if isinstance(jitter, (int, float, np.floating, np.integer)) and not jitter > 0:
        raise ValueError(f"jitter must be strictly positive, got {jitter}")


def add_jitter(matrix: tf.Tensor, jitter: TensorType) -> tf.Tensor:
    """
    Return a new matrix with `jitter` added to the diagonal of `matrix`:

    .. math:: K + εI

    :param matrix: A tensor with shape ``[..., N, N]``.
    :param jitter: A positive scalar :math:`ε`.
    :return: A tensor with shape ``[..., N, N]``.
    """
    check_jitter(jitter)
    jitter = tf.convert_to_tensor(jitter, dtype=matrix.dtype)
    tf.debugging.assert_positive(jitter, message="jitter must be strictly positive")
    return tf.linalg.set_diag(matrix, tf.linalg.diag_part(matrix) + jitter)


def flatten_observations(observations: TensorType) -> tf.Tensor:
    """
    Bring observations with shape ``[N]`` or ``[N, 1]`` to shape ``[N]``.

    :param observations: A tensor with shape ``[N]`` or ``[N, 1]``.
    :return: A tensor with shape ``[N]``.
    """
    observations = tf.convert_to_tensor(observations)
    if observations.shape.ndims == 2:
        tf.debugging.assert_shapes(
            [(observations, ("N", 1))], message="observations must have a single column"
        )
        return observations[:, 0]
    tf.debugging.assert_rank(observations, 1)
    return observations


def to_stateless_seed(seed: Seed) -> tf.Tensor:
    """
    Convert a seed to the shape ``[2]`` integer tensor expected by TensorFlow's stateless random
    operations (for example :func:`tf.random.stateless_normal`).

    :param seed: A Python integer, or a pair of integers.
    :return: A tensor with shape ``[2]`` and dtype ``int64``.
    """
    if isinstance(seed, (int, np.integer)):
        seed = [int(seed), 0]
    seed = tf.cast(tf.convert_to_tensor(seed), tf.int64)
    tf.debugging.assert_shapes([(seed, (2,))], message="a stateless seed has shape [2]")
    return seed
