# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

"""
Prior specifications. A prior is either a :class:`Prior` (a distribution
family with a location and a scale) or ``None``, which stands for a flat,
improper prior::

    priors = {
        "Intercept": normal(0., 1.),
        "x": flat(),
        "sigma": Prior("halfnormal", scale=2.),
    }

Flat priors are supported because they reproduce classical estimates, but
they are generally discouraged: they can yield improper posteriors and they
make sampling harder. Parameters without an entry get weakly informative
defaults scaled to the data, see :func:`default_priors`.
"""

import logging
from collections import OrderedDict, namedtuple

import pyro.distributions as dist
import torch
from pyro.distributions import constraints

logger = logging.getLogger(__name__)

REAL, POSITIVE = "real", "positive"

# family -> (support, constructor taking loc and scale tensors)
_FAMILIES = {
    "normal": (REAL, lambda loc, scale: dist.Normal(loc, scale)),
    "cauchy": (REAL, lambda loc, scale: dist.Cauchy(loc, scale)),
    "laplace": (REAL, lambda loc, scale: dist.Laplace(loc, scale)),
    "halfnormal": (POSITIVE, lambda loc, scale: dist.HalfNormal(scale)),
    "halfcauchy": (POSITIVE, lambda loc, scale: dist.HalfCauchy(scale)),
}


class Prior(namedtuple("Prior", ["family", "loc", "scale"])):
    """
    A proper prior distribution on one model parameter.

    :param str family: one of ``"normal"``, ``"cauchy"``, ``"laplace"`` (for
        real valued parameters such as coefficients) or ``"halfnormal"``,
        ``"halfcauchy"`` (for scale parameters). Half families are centered at
        zero and take only a scale.
    :param float loc: location.
    :param float scale: scale, strictly positive.
    """

    def __new__(cls, family, loc=0.0, scale=1.0):
        family = str(family).lower()
        if family not in _FAMILIES:
            raise ValueError(
                "Unsupported prior family {!r}, expected one of {}".format(
                    family, sorted(_FAMILIES)
                )
            )
        loc, scale = float(loc), float(scale)
        if not scale > 0:
            raise ValueError("Prior scale must be positive, got {}".format(scale))
        if _FAMILIES[family][0] == POSITIVE and loc != 0:
            raise ValueError(
                "{} priors are centered at 0, got loc={}".format(family, loc)
            )
        return super().__new__(cls, family, loc, scale)

    @property
    def support(self):
        return _FAMILIES[self.family][0]

    def to_distribution(self):
        """
        :returns: the equivalent Pyro distribution.
        :rtype: ~pyro.distributions.Distribution
        """
        make = _FAMILIES[self.family][1]
        dtype = torch.get_default_dtype()
        loc = torch.tensor(self.loc, dtype=dtype)
        return make(loc, torch.tensor(self.scale, dtype=dtype))


def normal(loc=0.0, scale=1.0):
    """Normal prior with the given location and scale."""
    return Prior("normal", loc, scale)


def flat():
    """
    Flat (improper) prior marker. This is ``None``.

    Flat priors are accepted but discouraged; a warning is logged for each
    parameter that uses one.
    """
    return None


def flat_distribution(support):
    """
    Improper uniform distribution over ``support`` (``"real"`` or
    ``"positive"``). Sites using it need explicit initial values since it
    cannot be sampled.
    """
    constraint = constraints.real if support == REAL else constraints.positive
    return dist.ImproperUniform(constraint, (), ())


def _std(x):
    if x.numel() < 2:
        return 1.0
    s = x.std().item()
    return s if s > 0 else 1.0


def default_priors(family, response, coef_names, design, groups, intercept=True):
    """
    Weakly informative defaults in the spirit of rstanarm and bambi: normal
    priors with scale 2.5 on the link scale, divided by each predictor's
    standard deviation, and half-Cauchy priors on scales.

    For logit families the reference scale is 1. For identity families it is
    the standard deviation of the response, and the intercept is centered at
    the response mean.

    :param Family family: the likelihood family.
    :param torch.Tensor response: encoded response.
    :param list coef_names: names of the columns of ``design``.
    :param torch.Tensor design: fixed-effect design matrix (rows x coefs),
        without the intercept column.
    :param list groups: names of the grouping factors.
    :param bool intercept: whether the model has a global intercept.
    :returns: an ordered dict mapping parameter names to Pyro distributions.
    :rtype: OrderedDict
    """
    dtype = torch.get_default_dtype()
    if family.link == "identity":
        ref_scale = _std(response)
        center = response.mean().item()
    else:
        ref_scale, center = 1.0, 0.0
    priors = OrderedDict()
    if intercept:
        priors["Intercept"] = dist.Normal(
            torch.tensor(center, dtype=dtype),
            torch.tensor(2.5 * ref_scale, dtype=dtype),
        )
    for j, name in enumerate(coef_names):
        scale = 2.5 * ref_scale / _std(design[:, j])
        priors[name] = dist.Normal(
            torch.tensor(0.0, dtype=dtype), torch.tensor(scale, dtype=dtype)
        )
    for name, default in family.default_aux_priors(ref_scale).items():
        priors[name] = default
    for group in groups:
        priors["1|{}_sigma".format(group)] = dist.HalfCauchy(
            torch.tensor(ref_scale, dtype=dtype)
        )
    return priors


def resolve_priors(priors, defaults, supports, column_coefs=None):
    """
    Merges user priors over ``defaults``.

    :param dict priors: user priors by parameter name; values are
        :class:`Prior` or ``None`` (flat). Keys may also name a categorical
        column, which applies the prior to all of its coefficients.
    :param OrderedDict defaults: default Pyro distributions by parameter name.
    :param dict supports: parameter name to ``"real"`` or ``"positive"``.
    :param dict column_coefs: column name to the coefficient names it expands to.
    :returns: a pair ``(distributions, flat_names)`` where ``distributions``
        maps every parameter to a Pyro distribution and ``flat_names`` lists
        parameters with flat priors.
    :raises ValueError: for unknown parameter names, for values that are
        neither :class:`Prior` nor ``None``, or for priors whose support does
        not match the parameter.
    """
    column_coefs = column_coefs or {}
    resolved = OrderedDict(defaults)
    flat_names = []
    for key, prior in (priors or {}).items():
        if key in column_coefs and key not in resolved:
            names = column_coefs[key]
        elif key in resolved:
            names = [key]
        else:
            raise ValueError(
                "Prior for unknown parameter {!r}; parameters are {}".format(
                    key, list(resolved)
                )
            )
        if prior is not None and not isinstance(prior, Prior):
            raise ValueError(
                "Prior for {!r} must be a Prior or None (flat), got {!r}".format(
                    key, prior
                )
            )
        for name in names:
            if prior is None:
                resolved[name] = flat_distribution(supports[name])
                flat_names.append(name)
                continue
            if prior.support != supports[name]:
                raise ValueError(
                    "Parameter {!r} has {} support but its {} prior has {} support".format(
                        name, supports[name], prior.family, prior.support
                    )
                )
            resolved[name] = prior.to_distribution()
    if flat_names:
        logger.warning(
            "Using flat (improper) priors for {}. Flat priors are generally "
            "discouraged: they may give an improper posterior and slow sampling.".format(
                ", ".join(flat_names)
            )
        )
    return resolved, flat_names
