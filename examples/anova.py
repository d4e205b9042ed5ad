# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

import argparse
import itertools
import logging

import torch

import bayesglm
from bayesglm import Formula, datasets
from bayesglm.summary import combine, describe

"""
Hierarchical one-way ANOVA: do summer months differ in mean temperature?

The wide site table (one column per month) is reshaped to long form, one row
per year and month. The model ``temperature ~ 1 + (1|month)`` has a global
intercept plus one deviation per month, drawn from a common normal
distribution whose scale is learned from the data (partial pooling). Pairwise
month differences are differences of the deviation draws.
"""

logging.basicConfig(format="%(message)s", level=logging.INFO)


def main(args):
    months = tuple(args.months)
    if args.data:
        wide = datasets.load_monthly_temperatures(args.data, months=months)
    else:
        wide = datasets.synthetic_temperatures(months=months, seed=args.seed)
    columns = ["month{}".format(m) for m in months]
    table = bayesglm.wide_to_long(
        wide, columns, var_name="month", value_name="temperature", id_columns=["year"]
    )
    logging.info(
        "Reshaped {} years x {} months into {} rows".format(
            len(wide), len(columns), len(table)
        )
    )

    posterior = bayesglm.fit(
        table,
        Formula("temperature", groups=["month"]),
        "gaussian",
        num_samples=args.num_samples,
        warmup_steps=args.warmup_steps,
        num_chains=args.num_chains,
        seed=args.seed,
        disable_progbar=args.disable_progbar,
    )
    logging.info("\nModel: temperature ~ 1 + (1|month), Gaussian")
    logging.info("=============================================")
    names = ["Intercept", "1|month_sigma", "1|month", "sigma"]
    logging.info(bayesglm.summary(posterior, names))

    levels = posterior.model.group_levels["month"]
    deviations = posterior.samples["1|month"]
    differences = {}
    for (i, a), (j, b) in itertools.combinations(enumerate(levels), 2):
        differences["{} - {}".format(b, a)] = combine(
            deviations[:, j], deviations[:, i], op=torch.sub
        )
    logging.info("\nPairwise month differences:")
    logging.info(describe(differences))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Hierarchical one-way ANOVA using NUTS"
    )
    parser.add_argument("-n", "--num-samples", nargs="?", default=1000, type=int)
    parser.add_argument("--warmup-steps", nargs="?", default=1000, type=int)
    parser.add_argument("--num-chains", nargs="?", default=1, type=int)
    parser.add_argument("--months", nargs="+", default=[6, 7, 8], type=int)
    parser.add_argument(
        "--data",
        nargs="?",
        default=None,
        type=str,
        help="semicolon separated site file",
    )
    parser.add_argument("--seed", nargs="?", default=0, type=int)
    parser.add_argument("--disable-progbar", action="store_true", default=False)
    args = parser.parse_args()
    main(args)
