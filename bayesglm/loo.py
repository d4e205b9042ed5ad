# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

"""
Model comparison by approximate leave-one-out cross-validation with Pareto
smoothed importance sampling (PSIS-LOO) and by WAIC.

References

[1] `Practical Bayesian model evaluation using leave-one-out cross-validation
    and WAIC`, Aki Vehtari, Andrew Gelman, Jonah Gabry
[2] `Pareto Smoothed Importance Sampling`, Aki Vehtari, Daniel Simpson,
    Andrew Gelman, Yuling Yao, Jonah Gabry
"""

import logging
import math
from collections import namedtuple

import pandas as pd
import pyro
import torch
from pyro.ops import stats

from bayesglm.fit import Posterior
from bayesglm.predictive import log_likelihood
from bayesglm.util import warn_unreliable

logger = logging.getLogger(__name__)

MAX_PARETO_K = 0.7


@pyro.settings.register("bayesglm_max_pareto_k", __name__, "MAX_PARETO_K")
def _validate_max_pareto_k(value):
    assert isinstance(value, (int, float)) and value > 0, value


LOO = namedtuple("LOO", ["elpd", "se", "p_loo", "pointwise", "pareto_k"])
LOO.__doc__ = """
Leave-one-out estimate of the expected log pointwise predictive density.

:ivar float elpd: total elpd, higher is better.
:ivar float se: standard error of ``elpd``.
:ivar float p_loo: effective number of parameters.
:ivar torch.Tensor pointwise: elpd of each observation.
:ivar torch.Tensor pareto_k: Pareto shape estimate of each observation.
"""

Comparison = namedtuple("Comparison", ["difference", "se"])
Comparison.__doc__ = """
Paired difference ``elpd(first) - elpd(second)`` and its standard error.
"""


def _gpd_quantiles(q, k, sigma):
    if abs(k) < 1e-10:
        return -sigma * torch.log1p(-q)
    return sigma * torch.expm1(-k * torch.log1p(-q)) / k


def _psis_1d(log_weights):
    num_draws = log_weights.size(0)
    log_weights = log_weights - log_weights.max()
    tail_size = int(math.ceil(min(0.2 * num_draws, 3 * math.sqrt(num_draws))))
    if tail_size < 5 or tail_size >= num_draws:
        return log_weights, math.inf
    sorted_weights, order = torch.sort(log_weights)
    cutoff = sorted_weights[-tail_size - 1]
    in_tail = sorted_weights[-tail_size:] > cutoff
    tail_index = order[-tail_size:][in_tail]
    tail = sorted_weights[-tail_size:][in_tail]
    if tail.numel() < 5:
        if tail.numel() == 0:
            # all weights in the tail are equal, nothing to smooth
            return log_weights, -math.inf
        return log_weights, math.inf

    k, sigma = stats.fit_generalized_pareto(tail.double().exp() - cutoff.double().exp())
    num_tail = tail.numel()
    q = (torch.arange(1, num_tail + 1, dtype=torch.double) - 0.5) / num_tail
    smoothed = (cutoff.double().exp() + _gpd_quantiles(q, k, sigma)).log()
    # weights are shifted so the raw maximum is 0
    smoothed = smoothed.clamp(max=0.0).to(log_weights.dtype)
    log_weights = log_weights.clone()
    log_weights[tail_index] = smoothed
    return log_weights, k


def psis(log_weights):
    """
    Pareto smoothed importance sampling: replaces the largest importance
    weights by quantiles of a generalized Pareto distribution fitted to the
    tail, see [2].

    The tail holds ``ceil(min(0.2 S, 3 sqrt(S)))`` of the ``S`` draws. With
    fewer than 5 tail draws nothing is smoothed and ``k`` is ``inf``.
    Smoothed weights never exceed the largest raw weight.

    :param torch.Tensor log_weights: log importance ratios with draws along
        dimension 0, shape ``(S,)`` or ``(S, N)``.
    :returns: a pair of normalized smoothed log weights (same shape) and the
        Pareto shape estimates ``k`` (a float for 1-d input, else shape
        ``(N,)``).
    """
    log_weights = torch.as_tensor(log_weights)
    if log_weights.dim() == 1:
        smoothed, k = _psis_1d(log_weights)
        return smoothed - smoothed.logsumexp(0), k
    columns, ks = [], []
    for lw in log_weights.reshape(log_weights.size(0), -1).unbind(-1):
        smoothed, k = _psis_1d(lw)
        columns.append(smoothed)
        ks.append(k)
    smoothed = torch.stack(columns, dim=-1)
    smoothed = smoothed - smoothed.logsumexp(0, keepdim=True)
    pareto_k = torch.tensor(ks).reshape(log_weights.shape[1:])
    return smoothed.reshape(log_weights.shape), pareto_k


def _standard_error(pointwise):
    num_obs = pointwise.numel()
    if num_obs < 2:
        return math.nan
    return math.sqrt(num_obs * pointwise.var().item())


def loo(posterior):
    """
    Approximate leave-one-out cross-validation without refitting, see [1].

    Observations whose Pareto ``k`` exceeds ``bayesglm_max_pareto_k`` make
    the estimate unreliable; they are reported as a
    :class:`~bayesglm.util.ConvergenceWarning` but do not raise.

    :param Posterior posterior: a fitted posterior.
    :rtype: LOO
    """
    ll = log_likelihood(posterior)
    num_draws = ll.size(0)
    smoothed, pareto_k = psis(-ll)
    pointwise = (ll + smoothed).logsumexp(0)
    lpd = ll.logsumexp(0) - math.log(num_draws)
    p_loo = (lpd - pointwise).sum().item()

    max_k = pyro.settings.get("bayesglm_max_pareto_k")
    bad = int((pareto_k > max_k).sum())
    if bad:
        warn_unreliable(
            [
                "{} of {} observations have Pareto k > {}; the leave-one-out "
                "estimate is unreliable for them".format(bad, pareto_k.numel(), max_k)
            ]
        )
    return LOO(
        elpd=pointwise.sum().item(),
        se=_standard_error(pointwise),
        p_loo=p_loo,
        pointwise=pointwise,
        pareto_k=pareto_k,
    )


def waic(posterior):
    """
    Widely applicable information criterion on the deviance scale (lower is
    better) and its effective number of parameters, computed by
    :func:`pyro.ops.stats.waic`.

    :param Posterior posterior: a fitted posterior.
    :returns: a pair of floats ``(waic, p_waic)``.
    """
    value, p_waic = stats.waic(log_likelihood(posterior))
    return value.item(), p_waic.item()


def _score(score):
    if isinstance(score, Posterior):
        return loo(score)
    if not isinstance(score, LOO):
        raise ValueError("Expected a LOO result or a Posterior, got {!r}".format(score))
    return score


def compare(score1, score2):
    """
    Compares two fits of the same observations by their leave-one-out elpd.

    The standard error is that of the paired pointwise differences, which is
    smaller than combining the two standard errors since both models see the
    same rows. The comparison is advisory: a difference within two standard
    errors is logged as no practical difference.

    :param score1: a :class:`LOO` result or a :class:`~bayesglm.fit.Posterior`.
    :param score2: same for the second model.
    :rtype: Comparison
    :raises ValueError: if the fits have different numbers of observations.
    """
    score1, score2 = _score(score1), _score(score2)
    if score1.pointwise.shape != score2.pointwise.shape:
        raise ValueError(
            "Cannot compare fits of {} and {} observations".format(
                score1.pointwise.numel(), score2.pointwise.numel()
            )
        )
    diff = score1.pointwise - score2.pointwise
    result = Comparison(diff.sum().item(), _standard_error(diff))
    if abs(result.difference) < 2 * result.se:
        logger.info(
            "elpd difference {:.2f} is within two standard errors ({:.2f}): "
            "no practical difference".format(result.difference, result.se)
        )
    return result


def compare_models(posteriors):
    """
    Ranks several fits of the same observations by leave-one-out elpd.

    :param dict posteriors: model name to :class:`~bayesglm.fit.Posterior`
        (or precomputed :class:`LOO`).
    :returns: one row per model, best first, with columns ``elpd``, ``se``,
        ``p_loo``, ``elpd_diff`` and ``diff_se`` (paired difference to the
        best model) and ``max_pareto_k``.
    :rtype: pandas.DataFrame
    """
    if not posteriors:
        raise ValueError("Need at least one model to compare")
    scores = {name: _score(p) for name, p in posteriors.items()}
    ranked = sorted(scores, key=lambda name: scores[name].elpd, reverse=True)
    best = scores[ranked[0]]
    rows = []
    for name in ranked:
        score = scores[name]
        if name == ranked[0]:
            diff, diff_se = 0.0, 0.0
        else:
            diff, diff_se = compare(score, best)
        rows.append(
            {
                "model": name,
                "elpd": score.elpd,
                "se": score.se,
                "p_loo": score.p_loo,
                "elpd_diff": diff,
                "diff_se": diff_se,
                "max_pareto_k": score.pareto_k.max().item(),
            }
        )
    return pd.DataFrame(rows).set_index("model")
