# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

"""
Model fitting by the No-U-Turn sampler of :mod:`pyro.infer.mcmc`.

Sampling is stochastic. Two fits agree draw for draw only when they are run
with the same ``seed`` (and the same settings); without a seed every fit is
different, which is expected and not a defect.
"""

import logging
from collections import OrderedDict

import pyro
import torch
from pyro.infer import MCMC, NUTS
from pyro.infer.autoguide.initialization import init_to_uniform, init_to_value

from bayesglm import settings
from bayesglm.model import GeneralizedLinearModel
from bayesglm.util import timed, warn_unreliable

logger = logging.getLogger(__name__)

NUM_SAMPLES = 1000
WARMUP_STEPS = 1000
NUM_CHAINS = 1
DISABLE_PROGBAR = False
MAX_R_HAT = 1.05
MIN_N_EFF = 100


@pyro.settings.register("bayesglm_num_samples", __name__, "NUM_SAMPLES")
@pyro.settings.register("bayesglm_warmup_steps", __name__, "WARMUP_STEPS")
@pyro.settings.register("bayesglm_num_chains", __name__, "NUM_CHAINS")
def _validate_count(value):
    assert isinstance(value, int) and value >= 0, value


@pyro.settings.register("bayesglm_disable_progbar", __name__, "DISABLE_PROGBAR")
def _validate_flag(value):
    assert isinstance(value, bool), value


@pyro.settings.register("bayesglm_max_r_hat", __name__, "MAX_R_HAT")
def _validate_max_r_hat(value):
    assert isinstance(value, (int, float)) and value > 1, value


@pyro.settings.register("bayesglm_min_n_eff", __name__, "MIN_N_EFF")
def _validate_min_n_eff(value):
    assert isinstance(value, (int, float)) and value >= 0, value


class Posterior:
    """
    Result of :func:`fit`: posterior draws of every parameter of ``model``.

    All entries of :attr:`samples` share the same leading draw dimension, and
    draw ``i`` of one parameter belongs to the same joint posterior sample as
    draw ``i`` of any other parameter. Chains are concatenated.

    :ivar GeneralizedLinearModel model: the fitted model.
    :ivar dict samples: parameter name to tensor of shape
        ``(num_draws,) + param_shape``, including derived group deviations.
    :ivar int num_chains: number of chains that were run.
    :ivar dict diagnostics: per parameter ``n_eff`` and ``r_hat``, plus
        ``divergences`` (chain to list of divergent iterations).
    :ivar list warnings: messages about unreliable inference. These are also
        emitted as :class:`~bayesglm.util.ConvergenceWarning`.
    :ivar seed: the seed the sampler ran with, or None.
    :ivar dict options: sampler options used, reused by :meth:`update`.
    """

    def __init__(
        self,
        model,
        samples,
        num_chains=1,
        diagnostics=None,
        warnings=(),
        seed=None,
        options=None,
    ):
        counts = {name: value.size(0) for name, value in samples.items()}
        if len(set(counts.values())) > 1:
            raise ValueError("Draw counts differ across parameters: {}".format(counts))
        self.model = model
        self.samples = samples
        self.num_chains = num_chains
        self.diagnostics = diagnostics or {}
        self.warnings = list(warnings)
        self.seed = seed
        self.options = dict(options or {})

    @property
    def num_draws(self):
        return next(iter(self.samples.values())).size(0)

    @property
    def param_names(self):
        return list(self.samples)

    @property
    def formula(self):
        return self.model.formula

    @property
    def family(self):
        return self.model.family

    def update(self, table, weights=None, **kwargs):
        """
        Refits the same model (formula, family and priors) to a new table.
        See :func:`refit`.
        """
        return refit(self, table, weights=weights, **kwargs)

    def __repr__(self):
        return "Posterior({}, family={}, num_draws={}, num_chains={})".format(
            self.model.formula, self.model.family.name, self.num_draws, self.num_chains
        )


def _check_convergence(mcmc, num_samples):
    messages = []
    diagnostics = {}
    if num_samples < 4:
        messages.append(
            "Too few samples ({}) to assess convergence".format(num_samples)
        )
        return diagnostics, messages
    diagnostics = mcmc.diagnostics()
    divergences = diagnostics.get("divergences", {})
    num_divergences = sum(len(v) for v in divergences.values())
    if num_divergences:
        messages.append(
            "{} divergent transitions after warmup; the posterior may be "
            "biased, consider stronger priors or more warmup".format(num_divergences)
        )
    max_r_hat = pyro.settings.get("bayesglm_max_r_hat")
    min_n_eff = pyro.settings.get("bayesglm_min_n_eff")
    for name, stats in diagnostics.items():
        if not isinstance(stats, dict) or "r_hat" not in stats:
            continue
        r_hat = stats["r_hat"]
        n_eff = stats["n_eff"]
        if torch.isfinite(r_hat).any() and (r_hat > max_r_hat).any():
            messages.append(
                "r_hat of {} is {:.3f} > {}; chains have not converged".format(
                    name, r_hat.max().item(), max_r_hat
                )
            )
        if torch.isfinite(n_eff).any() and (n_eff < min_n_eff).any():
            messages.append(
                "effective sample size of {} is {:.0f} < {}".format(
                    name, n_eff.min().item(), min_n_eff
                )
            )
    return diagnostics, messages


def _run(
    model,
    seed,
    num_samples,
    warmup_steps,
    num_chains,
    mp_context,
    disable_progbar,
    max_tree_depth,
    target_accept_prob,
):
    if seed is not None:
        pyro.set_rng_seed(seed)
    kernel = NUTS(
        model.model,
        max_plate_nesting=1,
        target_accept_prob=target_accept_prob,
        max_tree_depth=max_tree_depth,
        init_strategy=init_to_value(
            values=model.init_values(), fallback=init_to_uniform
        ),
    )
    mcmc = MCMC(
        kernel,
        num_samples=num_samples,
        warmup_steps=warmup_steps,
        num_chains=num_chains,
        mp_context=mp_context,
        disable_progbar=disable_progbar,
    )
    logger.info(
        "Sampling {} with {} chain(s) of {} warmup + {} draws".format(
            model, num_chains, warmup_steps, num_samples
        )
    )
    with timed() as t:
        mcmc.run(model.data)
    logger.info("Sampling finished in {:.1f}s".format(t.elapsed))
    return mcmc


def fit(
    table,
    formula,
    family="gaussian",
    priors=None,
    weights=None,
    *,
    num_samples=None,
    warmup_steps=None,
    num_chains=None,
    seed=None,
    mp_context=None,
    disable_progbar=None,
    max_tree_depth=10,
    target_accept_prob=0.8,
):
    """
    Fits a Bayesian generalized linear model with NUTS::

        table = bayesglm.datasets.two_groups()
        posterior = fit(table, Formula("proportion", terms=["group"]),
                        "binomial", weights="trials", seed=0)

    All configuration checks happen before sampling and raise
    :class:`ValueError`. Divergences, large R-hat or small effective sample
    sizes do not raise: they are collected in :attr:`Posterior.warnings` and
    emitted as :class:`~bayesglm.util.ConvergenceWarning`.

    Chains run in parallel processes when ``num_chains > 1`` and enough CPUs
    are available; the call blocks until every chain is done.

    :param pandas.DataFrame table: observations.
    :param formula: a :class:`~bayesglm.formula.Formula` or a response name.
    :param family: ``"bernoulli"``, ``"binomial"``, ``"gaussian"`` or ``"t"``.
    :param dict priors: optional priors by parameter name; ``None`` values
        request flat priors.
    :param weights: optional per-row weights (trial counts for binomial).
    :param int num_samples: draws per chain. Defaults to the
        ``bayesglm_num_samples`` setting of :mod:`pyro.settings`.
    :param int warmup_steps: warmup iterations per chain. Defaults to the
        ``bayesglm_warmup_steps`` setting.
    :param int num_chains: number of chains. Defaults to the
        ``bayesglm_num_chains`` setting.
    :param int seed: optional random seed for reproducible draws.
    :param str mp_context: multiprocessing context for parallel chains.
    :param bool disable_progbar: hide the progress bar. Defaults to the
        ``bayesglm_disable_progbar`` setting.
    :param int max_tree_depth: NUTS maximum tree depth.
    :param float target_accept_prob: NUTS step size adaptation target.
    :rtype: Posterior
    """
    model = GeneralizedLinearModel(
        table, formula, family, priors=priors, weights=weights
    )
    options = settings.resolve(
        num_samples=num_samples,
        warmup_steps=warmup_steps,
        num_chains=num_chains,
        disable_progbar=disable_progbar,
    )
    if options["num_samples"] < 1 or options["num_chains"] < 1:
        raise ValueError("num_samples and num_chains must be positive")
    options.update(
        mp_context=mp_context,
        max_tree_depth=max_tree_depth,
        target_accept_prob=target_accept_prob,
    )
    return _fit_model(model, seed, options)


def _fit_model(model, seed, options):
    mcmc = _run(model, seed, **options)
    samples = OrderedDict(
        (name, value.detach()) for name, value in mcmc.get_samples().items()
    )
    samples = model.derived_samples(samples)
    diagnostics, messages = _check_convergence(mcmc, options["num_samples"])
    if messages:
        warn_unreliable(messages)
    return Posterior(
        model,
        samples,
        num_chains=options["num_chains"],
        diagnostics=diagnostics,
        warnings=messages,
        seed=seed,
        options=options,
    )


def refit(posterior, table, weights=None, *, seed=None, **options):
    """
    Fits the model of ``posterior`` to new data: same formula, family and
    priors, new table. The result is an independent :class:`Posterior`;
    ``posterior`` is left untouched and none of its draws are reused.

    :param Posterior posterior: an earlier fit.
    :param pandas.DataFrame table: the new observations.
    :param weights: weights for the new rows. Required again for binomial
        models, since trial counts belong to the data.
    :param int seed: optional random seed.
    :param options: sampler options overriding those of the earlier fit.
    :rtype: Posterior
    """
    old = posterior.model
    model = GeneralizedLinearModel(
        table, old.formula, old.family, priors=old.user_priors, weights=weights
    )
    merged = dict(posterior.options)
    merged.update(options)
    logger.info("Refitting {} on {} new rows".format(model, len(table)))
    return _fit_model(model, seed, merged)
