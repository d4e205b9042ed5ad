# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

import argparse
import logging

import bayesglm
from bayesglm import Formula, datasets
from bayesglm.summary import describe

"""
Linear and robust regression of a monthly mean temperature on the year.

The same formula ``temperature ~ 1 + year`` is fit twice, with a Gaussian and
with a Student-t likelihood. The year is centered so that the intercept is the
temperature of an average year, which also makes sampling easier. The fits
are compared by approximate leave-one-out cross-validation; a difference
smaller than two standard errors means the data do not prefer either model.

Pass ``--data`` to read a semicolon separated site file (year in the first
column, month m in column m); otherwise a synthetic table is used.
"""

logging.basicConfig(format="%(message)s", level=logging.INFO)


def load(args):
    if args.data:
        table = datasets.load_monthly_temperatures(args.data, months=(args.month,))
    else:
        table = datasets.synthetic_temperatures(months=(args.month,), seed=args.seed)
    column = "month{}".format(args.month)
    center = table["year"].mean()
    table = table.rename(columns={column: "temperature"})
    table["year_c"] = table["year"] - center
    return table, center


def main(args):
    table, center = load(args)
    formula = Formula("temperature", terms=["year_c"])
    options = dict(
        num_samples=args.num_samples,
        warmup_steps=args.warmup_steps,
        num_chains=args.num_chains,
        seed=args.seed,
        disable_progbar=args.disable_progbar,
    )
    fits = {}
    for family in ("gaussian", "t"):
        fits[family] = bayesglm.fit(table, formula, family, **options)
        logging.info("\nModel: {}, {}".format(formula, family))
        logging.info("=" * 40)
        logging.info(bayesglm.summary(fits[family]))

    slope = fits["gaussian"].samples["year_c"]
    logging.info("\nWarming per decade (Gaussian model):")
    logging.info(describe({"per_decade": 10 * slope}))

    new_year = int(table["year"].max()) + 1
    new_rows = bayesglm.from_columns(year_c=[new_year - center])
    logging.info("\nExpected temperature in {}:".format(new_year))
    logging.info(bayesglm.predict(fits["gaussian"], new_rows))
    simulated = bayesglm.posterior_predictive(
        fits["gaussian"], new_rows, seed=args.seed
    )
    logging.info("\nPosterior predictive temperature in {}:".format(new_year))
    logging.info(describe({"temperature": simulated[:, 0]}))

    logging.info("\nLeave-one-out comparison:")
    logging.info(bayesglm.compare_models(fits))
    difference, se = bayesglm.compare(fits["gaussian"], fits["t"])
    logging.info("\nelpd(gaussian) - elpd(t) = {:.2f} +- {:.2f}".format(difference, se))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Temperature trend regression using NUTS"
    )
    parser.add_argument("-n", "--num-samples", nargs="?", default=1000, type=int)
    parser.add_argument("--warmup-steps", nargs="?", default=1000, type=int)
    parser.add_argument("--num-chains", nargs="?", default=1, type=int)
    parser.add_argument("--month", nargs="?", default=7, type=int)
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
