# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

"""
Predictions from a fitted posterior, vectorized over posterior draws.

Every function here evaluates the linear predictor of
:class:`~bayesglm.model.GeneralizedLinearModel` for all draws at once
instead of re-running the Pyro model, so flat (improper) priors need no
special treatment.
"""

import logging

import pandas as pd
import pyro
import torch

logger = logging.getLogger(__name__)


def _encode(posterior, table, weights):
    model = posterior.model
    if table is None:
        return model.data
    data = model.encode(table, weights)
    if model.family.requires_trials and data["trials"] is None:
        raise ValueError(
            "{} predictions need trial counts, pass them as weights".format(
                model.family.name
            )
        )
    return data


def _trials(data):
    trials = data["trials"]
    return None if trials is None else trials.unsqueeze(0)


def predict(posterior, new_rows, weights=None, prob=0.9):
    """
    Posterior of the expected response for new rows: a probability for
    logit families, the mean for identity families. Observation noise is not
    included, see :func:`posterior_predictive` for that.

    :param Posterior posterior: a fitted posterior.
    :param pandas.DataFrame new_rows: rows holding every term and group column
        of the formula.
    :param weights: trial counts for binomial models; ignored otherwise since
        the expected proportion does not depend on them.
    :param float prob: mass of the central interval reported in ``lower``
        and ``upper``.
    :returns: ``new_rows`` with added columns ``mean``, ``std``, ``lower`` and
        ``upper``.
    :rtype: pandas.DataFrame
    """
    model = posterior.model
    data = model.encode(new_rows, weights if model.family.requires_trials else None)
    eta = model.linear_predictor(posterior.samples, data)
    mu = model.family.mean(eta, model.aux_values(posterior.samples), _trials(data))
    tail = (1 - prob) / 2
    quantiles = torch.quantile(
        mu, torch.tensor([tail, 1 - tail], dtype=mu.dtype), dim=0
    )
    result = new_rows.reset_index(drop=True).copy()
    result["mean"] = mu.mean(0).tolist()
    result["std"] = mu.std(0).tolist() if mu.size(0) > 1 else [0.0] * mu.size(1)
    result["lower"] = quantiles[0].tolist()
    result["upper"] = quantiles[1].tolist()
    return result


def _draw_index(num_draws, num_samples):
    if num_samples is None:
        return torch.arange(num_draws)
    if num_samples < 1:
        raise ValueError("num_samples must be positive, got {}".format(num_samples))
    if num_samples > num_draws:
        logger.debug(
            "Resampling {} of {} posterior draws with replacement".format(
                num_samples, num_draws
            )
        )
        return torch.randint(num_draws, (num_samples,))
    return torch.randperm(num_draws)[:num_samples]


def posterior_predictive(
    posterior, new_rows=None, num_samples=None, weights=None, seed=None
):
    """
    Simulates outcomes from the posterior predictive distribution: for each
    selected posterior draw, one outcome per row drawn from the likelihood at
    that draw's parameters. For binomial models outcomes are success counts.

    :param Posterior posterior: a fitted posterior.
    :param pandas.DataFrame new_rows: rows to simulate; the training table by
        default.
    :param int num_samples: number of simulated outcomes per row. Defaults to
        one per posterior draw. Draws are resampled with replacement if this
        exceeds the number of posterior draws, without replacement otherwise.
    :param weights: trial counts for binomial models on ``new_rows``.
    :param int seed: optional random seed.
    :returns: tensor of shape ``(num_samples, num_rows)``.
    :rtype: torch.Tensor
    """
    model = posterior.model
    if new_rows is None and weights is not None:
        raise ValueError("weights apply to new_rows only")
    data = _encode(posterior, new_rows, weights)
    if seed is not None:
        pyro.set_rng_seed(seed)
    index = _draw_index(posterior.num_draws, num_samples)
    samples = {name: value[index] for name, value in posterior.samples.items()}
    eta = model.linear_predictor(samples, data)
    aux = model.aux_values(samples)
    with torch.no_grad():
        return model.family.distribution(eta, aux, _trials(data)).sample()


def log_likelihood(posterior, table=None, weights=None):
    """
    Pointwise log-likelihood of every row under every posterior draw. Rows
    with observation weights (non-binomial families) contribute their
    weighted log-likelihood, as in the fitted model.

    :param Posterior posterior: a fitted posterior.
    :param pandas.DataFrame table: rows with responses; the training table by
        default.
    :param weights: weights for ``table``.
    :returns: tensor of shape ``(num_draws, num_rows)``.
    :rtype: torch.Tensor
    """
    model = posterior.model
    if table is None:
        data = model.data
    else:
        data = model.encode(table, weights, with_response=True)
    eta = model.linear_predictor(posterior.samples, data)
    aux = model.aux_values(posterior.samples)
    trials = _trials(data)
    obs = model.family.observed(data["response"], data["trials"])
    result = model.family.distribution(eta, aux, trials).log_prob(obs)
    if data["obs_weights"] is not None:
        result = result * data["obs_weights"]
    return result
