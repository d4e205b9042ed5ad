# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

"""
Likelihood families. A family couples a link function with an observation
distribution from :mod:`pyro.distributions` and knows which auxiliary
parameters (e.g. ``sigma``) it needs::

    family = get_family("bernoulli")
    family.distribution(eta, aux={}, trials=None)  # Bernoulli(logits=eta)
"""

from collections import OrderedDict

import pyro.distributions as dist
import torch

from bayesglm.priors import POSITIVE


class Family:
    """
    Base class of likelihood families.

    :cvar str name: registry name.
    :cvar str link: ``"logit"`` or ``"identity"``.
    :cvar tuple aux_params: names of auxiliary parameters, all with positive
        support.
    """

    name = None
    link = "identity"
    aux_params = ()
    requires_trials = False

    def inverse_link(self, eta):
        if self.link == "logit":
            return torch.sigmoid(eta)
        return eta

    def validate(self, response, trials=None):
        """
        Checks that ``response`` is admissible for this family.

        :raises ValueError: on a family/response mismatch.
        """
        if not torch.isfinite(response).all():
            raise ValueError("{} response must be finite".format(self.name))

    def observed(self, response, trials=None):
        """Value passed as ``obs`` to the observation site."""
        return response

    def default_aux_priors(self, ref_scale):
        return OrderedDict()

    def distribution(self, eta, aux, trials=None):
        """
        Observation distribution given the linear predictor.

        :param torch.Tensor eta: linear predictor, any batch shape.
        :param dict aux: auxiliary parameter values broadcastable with ``eta``.
        :param torch.Tensor trials: trial counts for binomial families.
        :rtype: ~pyro.distributions.Distribution
        """
        raise NotImplementedError

    def mean(self, eta, aux, trials=None):
        """Expected response on the response scale."""
        return self.inverse_link(eta)

    def __repr__(self):
        return "{}()".format(type(self).__name__)


class Bernoulli(Family):
    name = "bernoulli"
    link = "logit"

    def validate(self, response, trials=None):
        super().validate(response)
        if not ((response == 0) | (response == 1)).all():
            raise ValueError("bernoulli response must be 0 or 1")

    def distribution(self, eta, aux, trials=None):
        return dist.Bernoulli(logits=eta)


class Binomial(Family):
    """
    Binomial family for a proportion response weighted by trial counts. The
    observed value is the number of successes, ``proportion * trials``.
    """

    name = "binomial"
    link = "logit"
    requires_trials = True

    def validate(self, response, trials=None):
        super().validate(response)
        if trials is None:
            raise ValueError(
                "binomial family needs trial counts, pass them as weights"
            )
        if ((response < 0) | (response > 1)).any():
            raise ValueError("binomial response must be a proportion in [0, 1]")
        if (trials <= 0).any() or (trials != trials.round()).any():
            raise ValueError("binomial trial counts must be positive integers")
        successes = response * trials
        if ((successes - successes.round()).abs() > 1e-3).any():
            raise ValueError("proportion * trials must be whole numbers of successes")

    def observed(self, response, trials=None):
        return (response * trials).round()

    def distribution(self, eta, aux, trials=None):
        return dist.Binomial(total_count=trials, logits=eta)

    def mean(self, eta, aux, trials=None):
        # expected proportion, not expected count
        return torch.sigmoid(eta)


class Gaussian(Family):
    name = "gaussian"
    aux_params = ("sigma",)

    def default_aux_priors(self, ref_scale):
        return OrderedDict(sigma=dist.HalfCauchy(torch.tensor(ref_scale)))

    def distribution(self, eta, aux, trials=None):
        return dist.Normal(eta, aux["sigma"])


class StudentT(Family):
    """
    Student-t likelihood for robust regression. The degrees of freedom ``nu``
    default to a Gamma(2, 0.1) prior.
    """

    name = "t"
    aux_params = ("sigma", "nu")

    def default_aux_priors(self, ref_scale):
        return OrderedDict(
            sigma=dist.HalfCauchy(torch.tensor(ref_scale)),
            nu=dist.Gamma(torch.tensor(2.0), torch.tensor(0.1)),
        )

    def distribution(self, eta, aux, trials=None):
        return dist.StudentT(aux["nu"], eta, aux["sigma"])


FAMILIES = {
    "bernoulli": Bernoulli,
    "binomial": Binomial,
    "gaussian": Gaussian,
    "normal": Gaussian,
    "t": StudentT,
    "studentt": StudentT,
    "student_t": StudentT,
}


def get_family(family):
    """
    Looks up a family by name, passing :class:`Family` instances through.

    :param family: a name such as ``"bernoulli"``, ``"binomial"``,
        ``"gaussian"`` or ``"t"``, or a :class:`Family`.
    :rtype: Family
    :raises ValueError: for unknown names.
    """
    if isinstance(family, Family):
        return family
    try:
        return FAMILIES[str(family).lower()]()
    except KeyError:
        raise ValueError(
            "Unknown family {!r}, expected one of {}".format(family, sorted(FAMILIES))
        ) from None


def aux_supports(family):
    return {name: POSITIVE for name in family.aux_params}
