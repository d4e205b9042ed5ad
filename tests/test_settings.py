# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

import pyro
import pytest

from bayesglm import settings

pytestmark = pytest.mark.stage("unit")

ALIASES = [
    "bayesglm_num_samples",
    "bayesglm_warmup_steps",
    "bayesglm_num_chains",
    "bayesglm_disable_progbar",
    "bayesglm_max_r_hat",
    "bayesglm_min_n_eff",
    "bayesglm_max_pareto_k",
]


def test_settings():
    v0 = pyro.settings.get()
    for alias in ALIASES:
        assert alias in v0
    assert pyro.settings.get("bayesglm_max_r_hat") == 1.05
    assert pyro.settings.get("bayesglm_min_n_eff") == 100
    assert pyro.settings.get("bayesglm_max_pareto_k") == 0.7


def test_settings_documented():
    registered = [a for a in pyro.settings.get() if a.startswith(settings.PREFIX)]
    assert sorted(registered) == sorted(ALIASES)
    for alias in registered:
        assert alias in settings.__doc__


@pytest.mark.parametrize(
    "alias,value",
    [
        ("bayesglm_num_samples", -1),
        ("bayesglm_num_chains", 1.5),
        ("bayesglm_disable_progbar", 1),
        ("bayesglm_max_r_hat", 1.0),
        ("bayesglm_min_n_eff", -1),
        ("bayesglm_max_pareto_k", 0),
    ],
)
def test_invalid_values(alias, value):
    old = pyro.settings.get(alias)
    with pytest.raises(AssertionError):
        pyro.settings.set(**{alias: value})
    assert pyro.settings.get(alias) == old


def test_resolve():
    with pyro.settings.context(bayesglm_num_samples=123):
        options = settings.resolve(num_samples=None, num_chains=3)
    assert options == {"num_samples": 123, "num_chains": 3}


def test_resolve_unknown_setting():
    with pytest.raises(KeyError):
        settings.resolve(no_such_setting=None)
