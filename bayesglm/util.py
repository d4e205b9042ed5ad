# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

import logging
import timeit
import warnings
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class ConvergenceWarning(UserWarning):
    """
    Signals that a fitted posterior or a leave-one-out estimate may be
    unreliable: divergent transitions, large split R-hat, small effective
    sample size, or large Pareto k. Downstream summaries still work.
    """

    pass


@contextmanager
def ignore_convergence_warning():
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=ConvergenceWarning)
        yield


def warn_unreliable(messages, stacklevel=3):
    """
    Logs each message and emits it as a :class:`ConvergenceWarning`.

    :param list messages: human readable warning messages.
    """
    for msg in messages:
        logger.warning(msg)
        warnings.warn(msg, ConvergenceWarning, stacklevel=stacklevel)


class timed:
    def __enter__(self, timer=timeit.default_timer):
        self.start = timer()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end = timeit.default_timer()
        self.elapsed = self.end - self.start
        return False
