# Copyright Contributors to the bayesglm project.
# SPDX-License-Identifier: Apache-2.0

import os
import subprocess
import sys

from setuptools import find_packages, setup

PROJECT_PATH = os.path.dirname(os.path.abspath(__file__))
VERSION = """
# This file is auto-generated with the version information during setup.py installation.

__version__ = '{}'
"""

# Find bayesglm version.
for line in open(os.path.join(PROJECT_PATH, "bayesglm", "__init__.py")):
    if line.startswith("version_prefix = "):
        version = line.strip().split()[2][1:-1]

# Append current commit sha to version
commit_sha = ""
try:
    current_tag = (
        subprocess.check_output(["git", "tag", "--points-at", "HEAD"], cwd=PROJECT_PATH)
        .decode("ascii")
        .strip()
    )
    # only add sha if HEAD does not point to the release tag
    if not current_tag == version:
        commit_sha = (
            subprocess.check_output(["git", "rev-parse", "--short", "HEAD"], cwd=PROJECT_PATH)
            .decode("ascii")
            .strip()
        )
except (OSError, subprocess.CalledProcessError):
    pass  # probably not a git repo

# Write version to _version.py
if commit_sha:
    version += "+{}".format(commit_sha)
with open(os.path.join(PROJECT_PATH, "bayesglm", "_version.py"), "w") as f:
    f.write(VERSION.format(version))


try:
    long_description = open("README.md", encoding="utf-8").read()
except OSError as e:
    sys.stderr.write("Failed to read README.md: {}\n".format(e))
    sys.stderr.flush()
    long_description = ""

TEST_REQUIRE = [
    "pytest>=5.0",
    "pytest-cov",
    "scipy>=1.1",
]

setup(
    name="bayesglm",
    version=version,
    description="Bayesian generalized linear models on top of Pyro's NUTS sampler",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["bayesglm", "bayesglm.*"]),
    install_requires=[
        # numpy is necessary for some functionality of PyTorch
        "numpy>=1.7",
        "pandas",
        "pyro-ppl>=1.9.0",
        "torch>=1.11.0",
    ],
    extras_require={
        "test": TEST_REQUIRE,
        "dev": TEST_REQUIRE
        + [
            "black",
            "flake8",
            "isort",
        ],
    },
    python_requires=">=3.8",
    keywords="statistics bayesian regression generalized linear models pyro pytorch",
    license="Apache 2.0",
    classifiers=[
        "Intended Audience :: Education",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS :: MacOS X",
        "Programming Language :: Python :: 3",
    ],
)
