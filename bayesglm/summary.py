# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

"""
Point estimates, raw draws and deterministic transforms of draws.

Draw sequences are 1-d tensors (or tensors with a leading draw dimension).
Transforms act element-wise, so a transformed sequence has the same length
as its input, and :func:`combine` pairs two sequences by draw index::

    d = draws(posterior, ["Intercept", "group"])
    p0 = expit(d["Intercept"])
    p1 = transform(combine(d["Intercept"], d["group"]), expit)
    ratio = odds_ratio(p0, p1)
"""

from collections import OrderedDict

import pandas as pd
import torch
from pyro.infer.mcmc.util import summary as mcmc_summary


def coefficients(posterior, point="median"):
    """
    Point estimate of every parameter.

    :param Posterior posterior: a fitted posterior.
    :param str point: ``"median"`` (default) or ``"mean"``.
    :returns: ordered dict of parameter name to a float (scalar parameters)
        or a tensor (vector parameters such as group deviations).
    :rtype: OrderedDict
    """
    if point not in ("median", "mean"):
        raise ValueError("point must be 'median' or 'mean', got {!r}".format(point))
    result = OrderedDict()
    for name, value in posterior.samples.items():
        if point == "median":
            estimate = value.median(dim=0).values
        else:
            estimate = value.mean(dim=0)
        result[name] = estimate.item() if estimate.dim() == 0 else estimate
    return result


def draws(posterior, names=None):
    """
    Posterior draws by parameter name.

    :param Posterior posterior: a fitted posterior.
    :param list names: parameters to return; all by default.
    :rtype: OrderedDict
    :raises KeyError: for unknown names.
    """
    if names is None:
        names = posterior.param_names
    elif isinstance(names, str):
        names = [names]
    result = OrderedDict()
    for name in names:
        if name not in posterior.samples:
            raise KeyError(
                "Unknown parameter {!r}; parameters are {}".format(
                    name, posterior.param_names
                )
            )
        result[name] = posterior.samples[name]
    return result


def expit(x):
    """Inverse logit, mapping log-odds to probabilities."""
    return torch.sigmoid(torch.as_tensor(x))


def logit(p):
    p = torch.as_tensor(p)
    return p.log() - (-p).log1p()


def odds(p):
    """Odds ``p / (1 - p)``; ``inf`` where ``p == 1``."""
    p = torch.as_tensor(p)
    return p / (1 - p)


def odds_ratio(p1, p2):
    """
    Odds ratio of probability draws ``p1`` over ``p2``, element-wise.

    Degenerate draws propagate as ``inf`` or ``nan`` instead of raising.
    """
    return odds(p1) / odds(p2)


def transform(values, fn):
    """
    Applies a deterministic element-wise transform ``fn`` to a draw sequence
    or to each sequence of a dict of them.

    :param values: a tensor or a dict of tensors.
    :param callable fn: element-wise function of a tensor, e.g. :func:`expit`.
    """
    if isinstance(values, dict):
        return OrderedDict((name, transform(v, fn)) for name, v in values.items())
    values = torch.as_tensor(values)
    result = fn(values)
    if result.shape != values.shape:
        raise ValueError(
            "Transform changed the shape of the draws from {} to {}".format(
                tuple(values.shape), tuple(result.shape)
            )
        )
    return result


def combine(a, b, op=torch.add):
    """
    Combines two draw sequences element-wise by draw index, e.g. intercept
    plus slope. Both must come from the same posterior, so that index ``i``
    refers to the same joint sample.

    :param torch.Tensor a: draws with a leading draw dimension.
    :param torch.Tensor b: draws with the same number of draws.
    :param callable op: binary element-wise operation. Defaults to addition.
    :raises ValueError: if the draw counts differ.
    """
    a, b = torch.as_tensor(a), torch.as_tensor(b)
    if a.size(0) != b.size(0):
        raise ValueError(
            "Cannot pair {} draws with {} draws; draws must be index aligned".format(
                a.size(0), b.size(0)
            )
        )
    if a.dim() < b.dim():
        a = a.reshape(a.shape + (1,) * (b.dim() - a.dim()))
    elif b.dim() < a.dim():
        b = b.reshape(b.shape + (1,) * (a.dim() - b.dim()))
    return op(a, b)


def _check_length(num_draws):
    # split R-hat needs at least 4 draws per chain
    if num_draws < 4:
        raise ValueError(
            "Need at least 4 draws per chain to summarize, got {}".format(num_draws)
        )


def _table(summaries, labels):
    rows = []
    for name, stats in summaries.items():
        shape = stats["mean"].shape
        if len(shape) == 0:
            rows.append((name, {k: v.item() for k, v in stats.items()}))
            continue
        flat = {k: v.reshape(-1) for k, v in stats.items()}
        for i in range(flat["mean"].numel()):
            label = labels.get(name)
            suffix = label[i] if label is not None and i < len(label) else i
            label = "{}[{}]".format(name, suffix)
            rows.append((label, {k: v[i].item() for k, v in flat.items()}))
    return pd.DataFrame.from_dict(OrderedDict(rows), orient="index")


def summary(posterior, names=None, prob=0.9):
    """
    Summary table of posterior draws: mean, standard deviation, median, the
    highest posterior density interval of mass ``prob``, effective sample size
    and split R-hat, one row per scalar parameter element. Group deviations
    are labelled by level.

    :param Posterior posterior: a fitted posterior.
    :param list names: parameters to include; all by default.
    :param float prob: interval mass.
    :rtype: pandas.DataFrame
    """
    selected = draws(posterior, names)
    num_chains = posterior.num_chains
    _check_length(posterior.num_draws // num_chains)
    grouped = {
        name: value.reshape((num_chains, -1) + value.shape[1:])
        for name, value in selected.items()
    }
    labels = {}
    for group, levels in posterior.model.group_levels.items():
        for name in ("1|{}".format(group), "1|{}_offset".format(group)):
            labels[name] = levels
    return _table(mcmc_summary(grouped, prob=prob, group_by_chain=True), labels)


def describe(values, prob=0.9):
    """
    Same table as :func:`summary` for derived draw sequences.

    :param values: a tensor of draws or a dict of them.
    :param float prob: interval mass.
    :rtype: pandas.DataFrame
    """
    if not isinstance(values, dict):
        values = {"value": values}
    values = {name: torch.as_tensor(v) for name, v in values.items()}
    for v in values.values():
        _check_length(v.size(0))
    return _table(mcmc_summary(values, prob=prob, group_by_chain=False), {})


def histogram(values, bins=20):
    """
    Histogram of a draw sequence as data, for rendering by any plotting
    library.

    :param torch.Tensor values: 1-d draws.
    :param int bins: number of equal width bins.
    :returns: a table with columns ``left``, ``right`` and ``count``.
    :rtype: pandas.DataFrame
    """
    values = torch.as_tensor(values).reshape(-1)
    values = values[torch.isfinite(values)]
    if values.numel() == 0:
        return pd.DataFrame(columns=["left", "right", "count"])
    low, high = values.min().item(), values.max().item()
    if low == high:
        low, high = low - 0.5, high + 0.5
    edges = torch.linspace(low, high, bins + 1, dtype=values.dtype)
    counts = torch.histc(values, bins=bins, min=low, max=high)
    return pd.DataFrame(
        {
            "left": edges[:-1].tolist(),
            "right": edges[1:].tolist(),
            "count": counts.long().tolist(),
        }
    )
