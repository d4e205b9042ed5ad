# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

"""
Observation tables are plain :class:`pandas.DataFrame` objects. This module
builds them from literal columns or from a delimited text file, and reshapes
wide tables (one column per repeated measurement) to long form.
"""

import logging
import numbers
import os

import numpy as np
import pandas as pd
import torch

logger = logging.getLogger(__name__)

_SEPARATORS = (";", ",", "\t", "|")


def from_columns(**columns):
    r"""
    Builds an observation table from literal columns::

        table = from_columns(y=[1, 0, 1], x=[0.5, 1.5, 2.5])

    :param \*\*columns: column name to sequence of scalars.
    :rtype: pandas.DataFrame
    :raises ValueError: if no columns are given or lengths differ.
    """
    if not columns:
        raise ValueError("Expected at least one column")
    lengths = {name: len(values) for name, values in columns.items()}
    if len(set(lengths.values())) != 1:
        raise ValueError("Columns must have equal lengths, got {}".format(lengths))
    return pd.DataFrame({name: list(values) for name, values in columns.items()})


def _select(table, columns, path):
    selected = []
    for col in columns:
        if isinstance(col, numbers.Integral):
            if not -table.shape[1] <= col < table.shape[1]:
                raise ValueError(
                    "{} has {} columns, cannot select column {}".format(
                        path, table.shape[1], col
                    )
                )
            selected.append(table.columns[col])
        elif col in table.columns:
            selected.append(col)
        else:
            raise ValueError(
                "{} has no column {!r}; columns are {}".format(
                    path, col, list(table.columns)
                )
            )
    return table[selected]


def read_table(path, sep=";", columns=None, names=None):
    """
    Reads a delimited text file with a header row.

    :param str path: file path.
    :param str sep: field separator. Defaults to ``";"``.
    :param list columns: optional columns to keep, each selected by position
        (int) or header name (str).
    :param list names: optional new names for the kept columns.
    :rtype: pandas.DataFrame
    :raises FileNotFoundError: if ``path`` does not exist.
    :raises ValueError: if the file is empty, the separator does not split the
        header, or a requested column is missing.
    """
    if not os.path.exists(path):
        raise FileNotFoundError("No such data file: {}".format(path))
    try:
        table = pd.read_csv(path, sep=sep)
    except pd.errors.EmptyDataError as e:
        raise ValueError("Data file {} is empty".format(path)) from e
    except pd.errors.ParserError as e:
        raise ValueError("Malformed data file {}: {}".format(path, e)) from e
    if table.shape[1] == 1:
        header = str(table.columns[0])
        if any(other in header for other in _SEPARATORS if other != sep):
            raise ValueError(
                "Separator {!r} does not split the header {!r} of {}".format(
                    sep, header, path
                )
            )
    if columns is not None:
        table = _select(table, columns, path)
    if names is not None:
        if len(names) != table.shape[1]:
            raise ValueError(
                "Got {} names for {} columns".format(len(names), table.shape[1])
            )
        table.columns = list(names)
    logger.debug("Read {} rows x {} columns from {}".format(*table.shape, path))
    return table.reset_index(drop=True)


def wide_to_long(table, columns, var_name="month", value_name="value", id_columns=()):
    """
    Reshapes ``table`` from wide to long form, e.g. one row per site-year with
    one column per month into one row per site-year-month.

    For ``N`` rows and ``k`` value columns the result has ``k * N`` rows and
    the columns ``id_columns + (var_name, value_name)``. Rows are ordered by
    value column first, then by original row.

    :param pandas.DataFrame table: wide table.
    :param list columns: the value columns to stack.
    :param str var_name: name of the column holding the former column names.
    :param str value_name: name of the column holding the values.
    :param tuple id_columns: columns repeated on every long row.
    :rtype: pandas.DataFrame
    """
    columns = list(columns)
    id_columns = list(id_columns)
    if not columns:
        raise ValueError("Expected at least one value column")
    missing = [c for c in columns + id_columns if c not in table.columns]
    if missing:
        raise ValueError("Table has no columns {}".format(missing))
    long = table.melt(
        id_vars=id_columns,
        value_vars=columns,
        var_name=var_name,
        value_name=value_name,
    )
    return long[id_columns + [var_name, value_name]].reset_index(drop=True)


def check_weights(table, weights):
    """
    Resolves per-row weights into a tensor aligned 1:1 with the rows of
    ``table``.

    :param pandas.DataFrame table: observation table.
    :param weights: a column name, a sequence of numbers, or None.
    :returns: a float tensor of shape ``(len(table),)`` or None.
    :raises ValueError: on misaligned length, missing column, negative or
        non-finite weights.
    """
    if weights is None:
        return None
    if isinstance(weights, str):
        if weights not in table.columns:
            raise ValueError("Table has no weights column {!r}".format(weights))
        weights = table[weights].to_numpy()
    if torch.is_tensor(weights):
        weights = weights.detach().cpu().numpy()
    weights = torch.tensor(
        np.asarray(weights, dtype=float), dtype=torch.get_default_dtype()
    )
    if weights.dim() != 1 or weights.size(0) != len(table):
        raise ValueError(
            "Expected {} weights, one per row, got shape {}".format(
                len(table), tuple(weights.shape)
            )
        )
    if not torch.isfinite(weights).all() or (weights < 0).any():
        raise ValueError("Weights must be finite and non-negative")
    return weights
