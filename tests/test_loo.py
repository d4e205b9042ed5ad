# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

import logging
import math

import pyro
import pytest
import torch

from bayesglm import datasets
from bayesglm.fit import fit
from bayesglm.formula import Formula
from bayesglm.loo import LOO, Comparison, compare, compare_models, loo, psis, waic
from bayesglm.util import ConvergenceWarning, ignore_convergence_warning
from tests.common import assert_close

pytestmark = pytest.mark.stage("unit")


@pytest.fixture(scope="module")
def temperature_fits():
    table = datasets.synthetic_temperatures(num_years=40, months=(7,), seed=0)
    table["year_c"] = table["year"] - table["year"].mean()
    formula = Formula("month7", ["year_c"])
    fits = {}
    with ignore_convergence_warning():
        for family in ("gaussian", "t"):
            fits[family] = fit(
                table,
                formula,
                family,
                num_samples=500,
                warmup_steps=500,
                seed=0,
                disable_progbar=True,
            )
    return fits


@pytest.mark.init(rng_seed=0)
def test_psis_light_tail():
    log_weights = torch.randn(1000, dtype=torch.double) * 0.3
    smoothed, k = psis(log_weights)
    assert smoothed.shape == log_weights.shape
    assert k < 0.5
    assert_close(smoothed.logsumexp(0).item(), 0.0, atol=1e-6)


@pytest.mark.init(rng_seed=0)
def test_psis_heavy_tail():
    # importance weights 1 / U are Pareto distributed with shape 1
    u = torch.rand(4000, dtype=torch.double)
    smoothed, k = psis(-u.log())
    assert k > 0.5


def test_psis_few_draws():
    smoothed, k = psis(torch.randn(20))
    assert k == math.inf
    assert_close(smoothed.logsumexp(0).item(), 0.0, atol=1e-5)


def test_psis_constant_weights():
    smoothed, k = psis(torch.zeros(100))
    assert k == -math.inf
    assert_close(smoothed, torch.full((100,), -math.log(100)), atol=1e-5)


@pytest.mark.init(rng_seed=0)
def test_psis_columns():
    log_weights = torch.randn(500, 3, dtype=torch.double)
    smoothed, k = psis(log_weights)
    assert smoothed.shape == (500, 3)
    assert k.shape == (3,)
    assert_close(smoothed.logsumexp(0), torch.zeros(3, dtype=torch.double), atol=1e-6)


def test_loo(temperature_fits):
    result = loo(temperature_fits["gaussian"])
    assert isinstance(result, LOO)
    assert result.pointwise.shape == (40,)
    assert result.pareto_k.shape == (40,)
    assert_close(result.elpd, result.pointwise.sum().item(), atol=1e-3)
    assert result.se > 0
    assert 0 < result.p_loo < 10


def test_loo_warns_on_large_pareto_k(temperature_fits):
    with pyro.settings.context(bayesglm_max_pareto_k=1e-6):
        with pytest.warns(ConvergenceWarning, match="Pareto k"):
            loo(temperature_fits["gaussian"])


def test_waic(temperature_fits):
    value, p_waic = waic(temperature_fits["gaussian"])
    assert math.isfinite(value)
    assert p_waic > 0
    # WAIC and LOO agree closely for well behaved models
    assert abs(value + 2 * loo(temperature_fits["gaussian"]).elpd) < 2.0


def test_gaussian_vs_t_no_practical_difference(temperature_fits):
    result = compare(temperature_fits["gaussian"], temperature_fits["t"])
    assert isinstance(result, Comparison)
    assert result.se > 0
    assert abs(result.difference) < 4 * result.se


def _score(pointwise):
    pointwise = torch.tensor(pointwise)
    pareto_k = torch.zeros(pointwise.shape)
    return LOO(pointwise.sum().item(), 1.0, 1.0, pointwise, pareto_k)


def test_compare_paired_difference(caplog):
    first = _score([-1.0, -2.0, -1.5, -1.0])
    second = _score([-1.1, -1.9, -1.5, -1.2])
    with caplog.at_level(logging.INFO, logger="bayesglm"):
        result = compare(first, second)
    diff = torch.tensor([0.1, -0.1, 0.0, 0.2])
    assert_close(result.difference, diff.sum().item(), atol=1e-5)
    assert_close(result.se, math.sqrt(4 * diff.var().item()), atol=1e-5)
    assert "no practical difference" in caplog.text


def test_compare_mismatched_observations():
    with pytest.raises(ValueError):
        compare(_score([-1.0, -2.0]), _score([-1.0, -2.0, -3.0]))


def test_compare_invalid_input():
    with pytest.raises(ValueError):
        compare(1.0, _score([-1.0]))


def test_compare_models():
    table = compare_models(
        {
            "worse": _score([-2.0, -3.0, -2.5]),
            "best": _score([-1.0, -1.0, -1.0]),
        }
    )
    assert list(table.index) == ["best", "worse"]
    assert table.loc["best", "elpd_diff"] == 0.0
    assert_close(table.loc["worse", "elpd_diff"], -4.5, atol=1e-5)
    assert list(table.columns) == [
        "elpd",
        "se",
        "p_loo",
        "elpd_diff",
        "diff_se",
        "max_pareto_k",
    ]
