# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

import argparse
import logging

import bayesglm
from bayesglm import Formula, datasets
from bayesglm.summary import combine, describe, draws, expit, histogram, odds_ratio

"""
Comparing two success probabilities with logistic regression.

The groups are encoded by an explicit 0/1 indicator column ``group``, so the
model ``proportion ~ 1 + group`` has the first group's log-odds as intercept
and the log-odds difference as the ``group`` coefficient. Because draw ``i``
of the intercept and draw ``i`` of the coefficient come from the same joint
posterior sample, adding them draw by draw gives posterior draws of the
second group's log-odds, and the odds ratio between the groups follows.
"""

logging.basicConfig(format="%(message)s", level=logging.INFO)


def main(args):
    table = datasets.two_groups()
    posterior = bayesglm.fit(
        table,
        Formula("proportion", terms=["group"]),
        "binomial",
        weights="trials",
        num_samples=args.num_samples,
        warmup_steps=args.warmup_steps,
        num_chains=args.num_chains,
        seed=args.seed,
        disable_progbar=args.disable_progbar,
    )
    logging.info("\nModel: proportion ~ 1 + group, Binomial")
    logging.info("=======================================")
    logging.info(bayesglm.summary(posterior))

    d = draws(posterior, ["Intercept", "group"])
    p0 = expit(d["Intercept"])
    p1 = expit(combine(d["Intercept"], d["group"]))
    ratio = odds_ratio(p0, p1)
    logging.info("\nSuccess probabilities and odds ratio of group 0 to group 1:")
    logging.info(describe({"p0": p0, "p1": p1, "odds_ratio": ratio}))
    logging.info(
        "\nPosterior probability that group 0 has the higher rate: {:.3f}".format(
            (p1 < p0).double().mean().item()
        )
    )
    logging.info("\nHistogram of the odds ratio:")
    logging.info(histogram(ratio, bins=args.bins))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Two group comparison using NUTS")
    parser.add_argument("-n", "--num-samples", nargs="?", default=1000, type=int)
    parser.add_argument("--warmup-steps", nargs="?", default=1000, type=int)
    parser.add_argument("--num-chains", nargs="?", default=1, type=int)
    parser.add_argument("--bins", nargs="?", default=20, type=int)
    parser.add_argument("--seed", nargs="?", default=0, type=int)
    parser.add_argument("--disable-progbar", action="store_true", default=False)
    args = parser.parse_args()
    main(args)
