# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

"""
Global defaults for sampling and for the diagnostics that decide when a fit
is flagged as unreliable.

The defaults are registered in :mod:`pyro.settings` under the ``bayesglm_``
prefix, next to Pyro's own settings::

    print(pyro.settings.get("bayesglm_num_samples"))
    pyro.settings.set(bayesglm_num_samples=500, bayesglm_warmup_steps=500)

    # Temporarily override, e.g. for a quick look at a model.
    with pyro.settings.context(bayesglm_num_samples=200):
        posterior = bayesglm.fit(table, formula, "bernoulli")

The registered settings are ``bayesglm_num_samples``,
``bayesglm_warmup_steps``, ``bayesglm_num_chains`` and
``bayesglm_disable_progbar`` (sampler defaults), ``bayesglm_max_r_hat`` and
``bayesglm_min_n_eff`` (convergence checks) and ``bayesglm_max_pareto_k``
(PSIS-LOO reliability).
"""

from typing import Any, Dict

import pyro

PREFIX = "bayesglm_"


def resolve(**overrides) -> Dict[str, Any]:
    r"""
    Fills ``None`` entries of ``overrides`` from the current settings.

    This is how keyword arguments like ``num_samples=None`` of
    :func:`bayesglm.fit` pick up ``bayesglm_num_samples``.

    :param \*\*overrides: unprefixed name=value pairs, where ``None`` means
        "use the global setting".
    :rtype: dict
    """
    return {
        name: pyro.settings.get(PREFIX + name) if value is None else value
        for name, value in overrides.items()
    }
