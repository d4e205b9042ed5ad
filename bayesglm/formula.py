# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

"""
Structured model formulas. A :class:`Formula` plays the role of the familiar
``y ~ 1 + x + (1|g)`` notation without a string parser::

    Formula("y")                            # y ~ 1
    Formula("y", terms=["x"])               # y ~ 1 + x
    Formula("y", terms=["x"], intercept=False)  # y ~ 0 + x
    Formula("value", groups=["month"])      # value ~ 1 + (1|month)
"""

from collections import namedtuple

INTERCEPT = "Intercept"


def group_name(group):
    """Name of the per-level deviations of grouping factor ``group``."""
    return "1|{}".format(group)


def group_sigma_name(group):
    """Name of the scale of the per-level deviations of ``group``."""
    return "1|{}_sigma".format(group)


def group_offset_name(group):
    """Name of the standardized (non-centered) deviations of ``group``."""
    return "1|{}_offset".format(group)


class Formula(namedtuple("Formula", ["response", "terms", "intercept", "groups"])):
    """
    Response plus explanatory variables of a generalized linear model.

    :param str response: name of the response column.
    :param tuple terms: names of fixed-effect columns. Numeric columns enter
        the linear predictor as they are; text or categorical columns are
        treatment coded with one coefficient per non-reference level.
    :param bool intercept: whether to include a global intercept.
    :param tuple groups: names of grouping factors. Each adds one random
        intercept per level: a deviation from the global intercept drawn from
        a zero-mean Normal with a shared, estimated scale.
    """

    def __new__(cls, response, terms=(), intercept=True, groups=()):
        if isinstance(terms, str):
            terms = (terms,)
        if isinstance(groups, str):
            groups = (groups,)
        terms, groups = tuple(terms), tuple(groups)
        if not isinstance(response, str) or not response:
            raise ValueError(
                "response must be a column name, got {!r}".format(response)
            )
        for kind, names in (("terms", terms), ("groups", groups)):
            if len(set(names)) != len(names):
                raise ValueError("Duplicate {} in {}".format(kind, names))
        if response in terms or response in groups:
            raise ValueError(
                "Response {!r} cannot also be a predictor".format(response)
            )
        both = set(terms) & set(groups)
        if both:
            raise ValueError(
                "Columns {} cannot be both fixed terms and groups".format(sorted(both))
            )
        if not intercept and groups:
            raise ValueError("Group intercepts need a global intercept")
        return super().__new__(cls, response, terms, bool(intercept), groups)

    @property
    def columns(self):
        """All columns the formula reads, response first."""
        return (self.response,) + self.terms + self.groups

    def __str__(self):
        rhs = ["1" if self.intercept else "0"]
        rhs.extend(self.terms)
        rhs.extend("({})".format(group_name(g)) for g in self.groups)
        return "{} ~ {}".format(self.response, " + ".join(rhs))
