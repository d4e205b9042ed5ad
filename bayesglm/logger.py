# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

import logging

default_format = "%(levelname)s \t %(name)s \t %(message)s"
log = logging.getLogger("bayesglm")
log.setLevel(logging.INFO)


# Library modules log to children of this logger, e.g. "bayesglm.fit".
# A handler is installed only when the application has not configured logging.
if not logging.root.handlers:
    default_handler = logging.StreamHandler()
    default_handler.setLevel(logging.INFO)
    default_handler.setFormatter(logging.Formatter(default_format))
    log.addHandler(default_handler)
    log.propagate = False
