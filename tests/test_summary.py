# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

import math

import pytest
import torch

from bayesglm import datasets
from bayesglm.data import from_columns
from bayesglm.fit import fit
from bayesglm.formula import Formula
from bayesglm.summary import (
    coefficients,
    combine,
    describe,
    draws,
    expit,
    histogram,
    logit,
    odds,
    odds_ratio,
    summary,
    transform,
)
from bayesglm.util import ignore_convergence_warning
from tests.common import assert_close, assert_equal

pytestmark = pytest.mark.stage("unit")


@pytest.fixture(scope="module")
def two_groups_posterior():
    with ignore_convergence_warning():
        return fit(
            datasets.two_groups(),
            Formula("proportion", terms=["group"]),
            "binomial",
            weights="trials",
            num_samples=300,
            warmup_steps=300,
            seed=0,
            disable_progbar=True,
        )


@pytest.fixture(scope="module")
def grouped_posterior():
    table = from_columns(
        y=[1.0, 1.4, 2.1, 0.8, 1.6, 2.3, 1.1, 1.5, 1.9],
        g=["a", "b", "c"] * 3,
    )
    with ignore_convergence_warning():
        return fit(table, Formula("y", groups=["g"]), num_samples=100, warmup_steps=100,
                   seed=0, disable_progbar=True)


@pytest.mark.init(rng_seed=0)
def test_expit_in_unit_interval():
    x = torch.randn(1000, dtype=torch.double) * 5
    p = expit(x)
    assert ((p > 0) & (p < 1)).all()


def test_expit_of_zeros():
    assert_equal(expit(torch.zeros(10)), torch.full((10,), 0.5))


def test_logit_inverts_expit():
    p = torch.tensor([0.1, 0.5, 0.9])
    assert_close(expit(logit(p)), p, atol=1e-6)


def test_odds_propagate_non_finite():
    assert odds(torch.tensor(1.0)).item() == math.inf
    assert odds_ratio(torch.tensor(0.5), torch.tensor(0.0)).item() == math.inf
    assert math.isnan(odds_ratio(torch.tensor(0.0), torch.tensor(0.0)).item())
    ratio = odds_ratio(torch.tensor(0.5), torch.tensor(0.2))
    assert_close(ratio.item(), 4.0, atol=1e-5)


def test_two_groups_odds_ratio(two_groups_posterior):
    d = draws(two_groups_posterior, ["Intercept", "group"])
    p0 = expit(d["Intercept"])
    p1 = expit(combine(d["Intercept"], d["group"]))
    ratio = odds_ratio(p0, p1)
    assert ratio.shape == (300,)
    assert ratio.median().item() > 1


def test_coefficients(two_groups_posterior):
    median = coefficients(two_groups_posterior)
    mean = coefficients(two_groups_posterior, point="mean")
    assert set(median) == {"Intercept", "group"}
    assert median["group"] < 0
    assert abs(median["Intercept"] - mean["Intercept"]) < 0.1
    with pytest.raises(ValueError):
        coefficients(two_groups_posterior, point="mode")


def test_draws(two_groups_posterior):
    assert list(draws(two_groups_posterior)) == two_groups_posterior.param_names
    assert list(draws(two_groups_posterior, "group")) == ["group"]
    with pytest.raises(KeyError):
        draws(two_groups_posterior, ["slope"])


def test_transform():
    x = torch.tensor([0.0, 1.0, -1.0])
    assert_equal(transform(x, torch.exp), x.exp())
    result = transform({"a": x, "b": x + 1}, expit)
    assert list(result) == ["a", "b"]
    assert result["b"].shape == x.shape
    with pytest.raises(ValueError):
        transform(x, torch.sum)


def test_combine():
    a = torch.tensor([1.0, 2.0])
    b = torch.tensor([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
    assert_equal(combine(a, b), torch.tensor([[2.0, 3.0, 4.0], [6.0, 7.0, 8.0]]))
    assert_equal(combine(a, a, op=torch.sub), torch.zeros(2))
    with pytest.raises(ValueError):
        combine(a, torch.ones(3))


def test_summary(two_groups_posterior):
    table = summary(two_groups_posterior)
    assert list(table.index) == ["Intercept", "group"]
    assert list(table.columns) == [
        "mean",
        "std",
        "median",
        "5.0%",
        "95.0%",
        "n_eff",
        "r_hat",
    ]
    assert (table["5.0%"] <= table["median"]).all()
    assert (table["median"] <= table["95.0%"]).all()
    assert list(summary(two_groups_posterior, ["group"], prob=0.5).columns)[3:5] == [
        "25.0%", "75.0%"
    ]


def test_summary_labels_group_levels(grouped_posterior):
    table = summary(grouped_posterior, ["1|g"])
    assert list(table.index) == ["1|g[a]", "1|g[b]", "1|g[c]"]


def test_summary_needs_draws():
    with ignore_convergence_warning():
        posterior = fit(
            from_columns(y=[0.1, 0.5, 0.9]), "y", num_samples=3, warmup_steps=10, seed=0
        )
    with pytest.raises(ValueError):
        summary(posterior)


@pytest.mark.init(rng_seed=0)
def test_describe():
    table = describe({"a": torch.randn(100), "b": torch.randn(100, 2)})
    assert list(table.index) == ["a", "b[0]", "b[1]"]
    assert "r_hat" in table.columns
    assert list(describe(torch.randn(50)).index) == ["value"]


def test_histogram():
    values = torch.tensor([0.0, 0.1, 0.5, 0.9, 1.0, float("inf")])
    table = histogram(values, bins=4)
    assert list(table.columns) == ["left", "right", "count"]
    assert len(table) == 4
    assert table["count"].sum() == 5
    assert_close(table["left"].iloc[0], 0.0)
    assert_close(table["right"].iloc[-1], 1.0)


def test_histogram_constant():
    table = histogram(torch.ones(10), bins=2)
    assert table["count"].tolist() == [0, 10] or table["count"].tolist() == [10, 0]
