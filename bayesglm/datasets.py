# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

import numpy as np

from bayesglm.data import from_columns, read_table


def bernoulli_trials():
    """
    Ten binary outcomes, seven successes and three failures.

    :rtype: pandas.DataFrame
    """
    return from_columns(y=[1, 1, 1, 0, 1, 1, 0, 1, 0, 1])


def binomial_trials(successes=(4, 3), trials=(5, 5)):
    """
    Paired trial and success counts with the observed ``proportion``, which
    is the response of a Binomial fit weighted by ``trials``.

    :rtype: pandas.DataFrame
    """
    return from_columns(
        successes=list(successes),
        trials=list(trials),
        proportion=[y / n for y, n in zip(successes, trials)],
    )


def two_groups(successes=(39, 22), trials=(674, 680)):
    """
    Two-group count comparison. ``group`` is an explicit indicator column,
    0 for the first group and 1 for the second.

    :rtype: pandas.DataFrame
    """
    return from_columns(
        group=[0, 1],
        successes=list(successes),
        trials=list(trials),
        proportion=[y / n for y, n in zip(successes, trials)],
    )


def load_monthly_temperatures(path, months=(6, 7, 8), sep=";"):
    """
    Loads a site-year temperature file whose column 0 holds the year and
    column ``m`` the mean temperature of month ``m``.

    :param str path: path to the delimited file (with a header row).
    :param tuple months: months to keep, 1 to 12.
    :param str sep: field separator.
    :returns: a table with columns ``year, month6, month7, ...``.
    :rtype: pandas.DataFrame
    """
    months = list(months)
    if not months or not all(1 <= m <= 12 for m in months):
        raise ValueError("months must lie in 1..12, got {}".format(months))
    return read_table(
        path,
        sep=sep,
        columns=[0] + months,
        names=["year"] + ["month{}".format(m) for m in months],
    )


def synthetic_temperatures(num_years=40, months=(6, 7, 8), seed=0):
    """
    A reproducible table with the layout of :func:`load_monthly_temperatures`:
    a linear warming trend of 0.03 degrees per year, a fixed offset per month
    and Gaussian noise.

    :rtype: pandas.DataFrame
    """
    rng = np.random.RandomState(seed)
    years = np.arange(1980, 1980 + num_years)
    offsets = {6: 17.0, 7: 19.0, 8: 18.5}
    columns = {"year": years}
    for m in months:
        trend = offsets.get(m, 10.0) + 0.03 * (years - years[0])
        noise = rng.normal(0, 1.0, num_years)
        columns["month{}".format(m)] = np.round(trend + noise, 2)
    return from_columns(**columns)
