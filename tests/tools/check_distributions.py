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
"""Module containing statistical assertions on samples."""
from typing import Optional

import numpy as np


def assert_samples_close_to_mean_in_expectation(
    samples: np.ndarray,
    true_mean: np.ndarray,
    true_variance: Optional[np.ndarray] = None,
    sigma: float = 4.0,
) -> None:
    """
    Raise an error if the sample mean is further than `sigma` standard errors from the true
    mean, in any dimension.

    The standard error uses `true_variance` if given, and the sample variance otherwise.
    Choose `sigma` so that a spurious failure is very unlikely when many dimensions (or many
    tests) are checked at once.

    :param samples: An array with shape ``[num_samples, ...]``.
    :param true_mean: An array with the trailing shape of `samples`.
    :param true_variance: An optional array with the trailing shape of `samples`.
    :param sigma: The number of standard errors tolerated.
    """
    num_samples = samples.shape[0]
    sample_mean = np.mean(samples, axis=0)
    assert sample_mean.shape == true_mean.shape

    variance = np.var(samples, axis=0) if true_variance is None else true_variance
    standard_error = np.sqrt(variance / num_samples)
    np.testing.assert_array_less(np.abs(sample_mean - true_mean) / standard_error, sigma)
