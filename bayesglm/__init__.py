# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

from bayesglm.data import from_columns, read_table, wide_to_long
from bayesglm.families import get_family
from bayesglm.fit import Posterior, fit, refit
from bayesglm.formula import Formula
from bayesglm.logger import log
from bayesglm.loo import compare, compare_models, loo, psis, waic
from bayesglm.model import GeneralizedLinearModel
from bayesglm.predictive import log_likelihood, posterior_predictive, predict
from bayesglm.priors import Prior, flat, normal
from bayesglm.summary import (
    coefficients,
    combine,
    describe,
    draws,
    expit,
    histogram,
    logit,
    odds,
    odds_ratio,
    summary,
    transform,
)
from bayesglm.util import ConvergenceWarning, ignore_convergence_warning

from . import datasets, settings

# Keep in sync with the release tag.
version_prefix = "0.1.0"

# Get the __version__ string from the auto-generated _version.py file, if exists.
try:
    from bayesglm._version import __version__  # type: ignore
except ImportError:
    __version__ = version_prefix

__all__ = [
    "__version__",
    "ConvergenceWarning",
    "Formula",
    "GeneralizedLinearModel",
    "Posterior",
    "Prior",
    "coefficients",
    "combine",
    "compare",
    "compare_models",
    "datasets",
    "describe",
    "draws",
    "expit",
    "fit",
    "flat",
    "from_columns",
    "get_family",
    "histogram",
    "ignore_convergence_warning",
    "log",
    "log_likelihood",
    "logit",
    "loo",
    "normal",
    "odds",
    "odds_ratio",
    "posterior_predictive",
    "predict",
    "psis",
    "read_table",
    "refit",
    "settings",
    "summary",
    "transform",
    "waic",
    "wide_to_long",
]
