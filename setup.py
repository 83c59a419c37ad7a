#!/usr/bin/env python
"""Setup for the pysystems package."""

from setuptools import setup

setup(
    name="pysystems",
    version="0.1.0",
    description="Stock and flow modeling language with a discrete round simulator",
    packages=["systems"],
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "pandas",
        "cattrs",
    ],
    extras_require={
        "test": [
            "pytest",
            "hypothesis",
        ],
    },
    entry_points={
        "console_scripts": [
            "systems-run=systems.cli:main",
        ],
    },
)
