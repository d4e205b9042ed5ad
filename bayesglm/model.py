# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

import logging
from collections import OrderedDict
from contextlib import ExitStack

import pandas as pd
import pyro
import pyro.distributions as dist
import pyro.poutine as poutine
import torch

from bayesglm.data import check_weights
from bayesglm.families import aux_supports, get_family
from bayesglm.formula import (
    INTERCEPT,
    Formula,
    group_name,
    group_offset_name,
    group_sigma_name,
)
from bayesglm.priors import POSITIVE, REAL, default_priors, resolve_priors

logger = logging.getLogger(__name__)


def _is_categorical(series):
    return not pd.api.types.is_numeric_dtype(series) or isinstance(
        series.dtype, pd.CategoricalDtype
    )


def _levels(series):
    if isinstance(series.dtype, pd.CategoricalDtype):
        return list(series.cat.categories)
    return sorted(series.dropna().unique().tolist(), key=str)


class GeneralizedLinearModel:
    """
    A Bayesian generalized linear model bound to a training table.

    Everything that can be checked without sampling is checked here, so that
    configuration errors surface before any sampler runs: missing columns,
    a response the family cannot model, misaligned weights, priors naming
    unknown parameters or with the wrong support.

    The Pyro model is :meth:`model`. Latent sites are ``"Intercept"``, one
    site per fixed coefficient, and per grouping factor ``g`` a scale
    ``"1|g_sigma"`` and standardized deviations ``"1|g_offset"`` (one per
    level). The deviations themselves, ``"1|g" = offset * sigma``, are
    derived after sampling by :meth:`derived_samples`.

    :param pandas.DataFrame table: training observations.
    :param formula: a :class:`~bayesglm.formula.Formula`, or a response
        column name for an intercept-only model.
    :param family: a family name or :class:`~bayesglm.families.Family`.
    :param dict priors: optional priors by parameter name, see
        :mod:`bayesglm.priors`.
    :param weights: optional per-row weights, a column name or a sequence.
        For the binomial family these are the trial counts; otherwise they
        scale each row's log-likelihood and must be positive.
    """

    def __init__(self, table, formula, family="gaussian", priors=None, weights=None):
        if isinstance(formula, str):
            formula = Formula(formula)
        if not isinstance(formula, Formula):
            raise ValueError("Expected a Formula, got {!r}".format(formula))
        if not isinstance(table, pd.DataFrame):
            raise ValueError("Expected a pandas.DataFrame, got {}".format(type(table)))
        if len(table) == 0:
            raise ValueError("Cannot fit a model to an empty table")
        missing = [c for c in formula.columns if c not in table.columns]
        if missing:
            raise ValueError(
                "Formula {} uses columns {} missing from the table".format(
                    formula, missing
                )
            )
        self.formula = formula
        self.family = get_family(family)
        self.user_priors = dict(priors or {})
        self.table = table.reset_index(drop=True)
        self.weights = weights

        self._learn_encoding(self.table)
        if not self.params:
            raise ValueError(
                "Formula {} has no parameters to estimate".format(formula)
            )
        self.data = self.encode(self.table, weights, with_response=True)

        supports = OrderedDict()
        if formula.intercept:
            supports[INTERCEPT] = REAL
        for name in self.coef_names:
            supports[name] = REAL
        for group in formula.groups:
            supports[group_sigma_name(group)] = POSITIVE
        supports.update(aux_supports(self.family))
        self.supports = supports

        defaults = default_priors(
            self.family,
            self.data["response"],
            self.coef_names,
            self.data["design"],
            formula.groups,
            intercept=formula.intercept,
        )
        self.priors, self.flat_params = resolve_priors(
            self.user_priors, defaults, supports, self.column_coefs
        )

    @property
    def num_obs(self):
        return len(self.table)

    @property
    def params(self):
        """Names of the latent sample sites, in model order."""
        names = [INTERCEPT] if self.formula.intercept else []
        names.extend(self.coef_names)
        for group in self.formula.groups:
            names.extend([group_sigma_name(group), group_offset_name(group)])
        names.extend(self.family.aux_params)
        return names

    def _learn_encoding(self, table):
        self.coef_names = []
        self.column_coefs = OrderedDict()
        self.term_levels = {}
        for term in self.formula.terms:
            series = table[term]
            if _is_categorical(series):
                levels = _levels(series)
                if len(levels) < 2:
                    raise ValueError(
                        "Categorical term {!r} needs at least two levels, got {}".format(
                            term, levels
                        )
                    )
                self.term_levels[term] = levels
                names = ["{}[{}]".format(term, level) for level in levels[1:]]
            else:
                names = [term]
            self.column_coefs[term] = names
            self.coef_names.extend(names)
        self.group_levels = OrderedDict(
            (group, _levels(table[group])) for group in self.formula.groups
        )
        reserved = {"obs", "data", INTERCEPT} | set(self.family.aux_params)
        for group in self.formula.groups:
            reserved |= {"{}_levels".format(group), group_name(group)}
            reserved |= {group_sigma_name(group), group_offset_name(group)}
        clashes = sorted(reserved & set(self.coef_names))
        if clashes:
            raise ValueError(
                "Predictor names {} clash with model parameters".format(clashes)
            )

    def encode(self, table, weights=None, with_response=False):
        """
        Encodes rows of ``table`` into the tensors consumed by :meth:`model`
        and :meth:`linear_predictor`.

        :param pandas.DataFrame table: rows to encode; must contain every term
            and group column (and the response if ``with_response``).
        :param weights: optional weights aligned with the rows.
        :param bool with_response: whether to encode the response.
        :returns: dict with keys ``design``, ``response``, ``trials``,
            ``obs_weights`` and ``groups``.
        :rtype: dict
        :raises ValueError: on missing columns, non-numeric or non-finite
            values, or levels that were not seen in the training table.
        """
        table = table.reset_index(drop=True)
        needed = list(self.formula.terms) + list(self.formula.groups)
        if with_response:
            needed.insert(0, self.formula.response)
        missing = [c for c in needed if c not in table.columns]
        if missing:
            raise ValueError("Table is missing columns {}".format(missing))
        dtype = torch.get_default_dtype()
        num_rows = len(table)

        columns = []
        for term in self.formula.terms:
            series = table[term]
            if term in self.term_levels:
                levels = self.term_levels[term]
                unknown = sorted(set(series.tolist()) - set(levels), key=str)
                if unknown:
                    raise ValueError(
                        "Unknown levels {} of {!r}; known levels are {}".format(
                            unknown, term, levels
                        )
                    )
                for level in levels[1:]:
                    indicator = (series == level).to_numpy()
                    columns.append(torch.tensor(indicator, dtype=dtype))
            else:
                if _is_categorical(series):
                    raise ValueError("Term {!r} must be numeric".format(term))
                columns.append(torch.tensor(series.to_numpy(dtype=float), dtype=dtype))
        if columns:
            design = torch.stack(columns, dim=-1)
        else:
            design = torch.zeros(num_rows, 0, dtype=dtype)
        if not torch.isfinite(design).all():
            raise ValueError("Predictors must be finite")

        groups = OrderedDict()
        for group, levels in self.group_levels.items():
            index = {level: i for i, level in enumerate(levels)}
            values = table[group].tolist()
            unknown = sorted(set(values) - set(index), key=str)
            if unknown:
                raise ValueError(
                    "Unknown levels {} of group {!r}; known levels are {}".format(
                        unknown, group, levels
                    )
                )
            groups[group] = torch.tensor([index[v] for v in values], dtype=torch.long)

        weights = check_weights(table, weights)
        trials = obs_weights = None
        if self.family.requires_trials:
            trials = weights
        elif weights is not None:
            if not (weights > 0).all():
                raise ValueError("Observation weights must be positive")
            obs_weights = weights

        response = None
        if with_response:
            series = table[self.formula.response]
            if _is_categorical(series):
                raise ValueError(
                    "Response {!r} must be numeric".format(self.formula.response)
                )
            response = torch.tensor(series.to_numpy(dtype=float), dtype=dtype)
            self.family.validate(response, trials)

        return {
            "design": design,
            "response": response,
            "trials": trials,
            "obs_weights": obs_weights,
            "groups": groups,
        }

    def init_values(self):
        """
        Initial values for parameters with flat priors, which cannot be
        initialized by sampling from their prior.
        """
        dtype = torch.get_default_dtype()
        return {
            name: torch.tensor(0.0 if self.supports[name] == REAL else 1.0, dtype=dtype)
            for name in self.flat_params
        }

    def model(self, data):
        design = data["design"]
        num_rows = design.size(0)
        eta = design.new_zeros(num_rows)
        if self.formula.intercept:
            eta = eta + pyro.sample(INTERCEPT, self.priors[INTERCEPT])
        for j, name in enumerate(self.coef_names):
            eta = eta + pyro.sample(name, self.priors[name]) * design[:, j]
        for group, levels in self.group_levels.items():
            name = group_sigma_name(group)
            sigma = pyro.sample(name, self.priors[name])
            with pyro.plate("{}_levels".format(group), len(levels)):
                offset = pyro.sample(
                    group_offset_name(group),
                    dist.Normal(design.new_zeros(()), design.new_ones(())),
                )
            eta = eta + sigma * offset[data["groups"][group]]
        aux = {
            name: pyro.sample(name, self.priors[name])
            for name in self.family.aux_params
        }

        obs = None
        if data["response"] is not None:
            obs = self.family.observed(data["response"], data["trials"])
        with ExitStack() as stack:
            stack.enter_context(pyro.plate("data", num_rows))
            if data["obs_weights"] is not None:
                stack.enter_context(poutine.scale(scale=data["obs_weights"]))
            return pyro.sample(
                "obs", self.family.distribution(eta, aux, data["trials"]), obs=obs
            )

    def derived_samples(self, samples):
        """
        Adds the group deviations ``"1|g" = offset * sigma`` to ``samples``.

        :param dict samples: posterior draws keyed by site name, each with a
            leading draw dimension.
        :rtype: dict
        """
        samples = dict(samples)
        for group in self.formula.groups:
            sigma = samples[group_sigma_name(group)]
            offset = samples[group_offset_name(group)]
            offset = offset.reshape(sigma.size(0), -1)
            samples[group_name(group)] = sigma.reshape(-1, 1) * offset
        return samples

    def linear_predictor(self, samples, data):
        """
        Evaluates the linear predictor for every posterior draw.

        :param dict samples: posterior draws with a leading draw dimension,
            including the derived group deviations.
        :param dict data: encoded rows, see :meth:`encode`.
        :returns: tensor of shape ``(num_draws, num_rows)``.
        :rtype: torch.Tensor
        """
        design = data["design"]
        num_draws = next(iter(samples.values())).size(0)
        eta = design.new_zeros(num_draws, design.size(0))
        if self.formula.intercept:
            eta = eta + samples[INTERCEPT].reshape(num_draws, 1)
        for j, name in enumerate(self.coef_names):
            eta = eta + samples[name].reshape(num_draws, 1) * design[:, j]
        for group in self.formula.groups:
            deviations = samples[group_name(group)].reshape(num_draws, -1)
            eta = eta + deviations[:, data["groups"][group]]
        return eta

    def aux_values(self, samples):
        """Auxiliary parameter draws shaped ``(num_draws, 1)`` for broadcasting."""
        return {
            name: samples[name].reshape(-1, 1) for name in self.family.aux_params
        }

    def __repr__(self):
        return "{}({}, family={})".format(
            type(self).__name__, self.formula, self.family.name
        )
