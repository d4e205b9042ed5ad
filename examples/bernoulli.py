# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

import argparse
import logging

import bayesglm
from bayesglm import Formula, datasets
from bayesglm.summary import describe, draws, expit

"""
Estimating a single success probability.

The first model is intercept-only logistic regression on ten binary outcomes,
``y ~ 1`` with a Bernoulli likelihood. The intercept lives on the log-odds
scale; applying the inverse logit to every draw gives posterior draws of the
success probability itself.

The second model fits the same kind of data aggregated into trial counts,
a Binomial likelihood on the observed proportion weighted by the number of
trials, and is then refit after new observations arrive.
"""

logging.basicConfig(format="%(message)s", level=logging.INFO)


def main(args):
    options = dict(
        num_samples=args.num_samples,
        warmup_steps=args.warmup_steps,
        num_chains=args.num_chains,
        disable_progbar=args.disable_progbar,
    )

    table = datasets.bernoulli_trials()
    posterior = bayesglm.fit(
        table, Formula("y"), "bernoulli", seed=args.seed, **options
    )
    logging.info("\nModel: y ~ 1, Bernoulli")
    logging.info("=======================")
    logging.info(bayesglm.summary(posterior))
    theta = expit(draws(posterior, "Intercept")["Intercept"])
    logging.info("\nSuccess probability (inverse logit of the intercept):")
    logging.info(describe({"theta": theta}))

    table = datasets.binomial_trials()
    posterior = bayesglm.fit(
        table,
        Formula("proportion"),
        "binomial",
        weights="trials",
        seed=args.seed,
        **options,
    )
    logging.info(
        "\nModel: proportion ~ 1, Binomial with {} trials".format(
            table["trials"].tolist()
        )
    )
    logging.info(describe({"theta": expit(posterior.samples["Intercept"])}))

    updated = datasets.binomial_trials(successes=(4, 5))
    posterior = posterior.update(updated, weights="trials", seed=args.seed)
    logging.info("\nRefit on successes {}".format(updated["successes"].tolist()))
    logging.info(describe({"theta": expit(posterior.samples["Intercept"])}))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Bernoulli and Binomial models using NUTS"
    )
    parser.add_argument("-n", "--num-samples", nargs="?", default=1000, type=int)
    parser.add_argument("--warmup-steps", nargs="?", default=1000, type=int)
    parser.add_argument("--num-chains", nargs="?", default=1, type=int)
    parser.add_argument("--seed", nargs="?", default=0, type=int)
    parser.add_argument("--disable-progbar", action="store_true", default=False)
    args = parser.parse_args()
    main(args)
