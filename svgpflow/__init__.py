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
Sparse variational Gaussian processes in TensorFlow and GPflow.
"""
from . import kl, likelihoods, models, quadrature
from .elbo import ELBOTerms, elbo, elbo_terms, minibatch_scale, negative_elbo
from .gaussian import InducingPrior, VariationalPosterior
from .mean_function import ConstantMeanFunction, LinearMeanFunction, ZeroMeanFunction
from .models import GaussianProcessRegression, SparseVariationalGaussianProcess
from .posterior import PosteriorProcess, SparseVariationalPosterior
from .prior import GaussianProcessPrior
from .quadrature import Analytic, DefaultQuadrature, GaussHermite, MonteCarlo, get_quadrature
