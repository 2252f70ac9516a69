# SPDX-FileCopyrightText: 2025 Zilant Prime Core contributors
# SPDX-License-Identifier: MIT

from setuptools import find_packages, setup

setup(
    name="rootsentry",
    version="0.1.0",
    description="Root detection engine for Android devices and images",
    author="Zilant Prime Core contributors",
    license="MIT",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.8",
    install_requires=[
        "click<9.0,>=8.1",
        "psutil>=5.9.0",
        "PyYAML<7.0,>=6.0",
    ],
    extras_require={
        "android": [
            "pyjnius>=1.5",
        ],
        "test": [
            "pytest>=8.0.0",
            "pytest-cov>=5.0.0",
            "pytest-timeout>=2.3.0",
            "hypothesis>=6.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "rootsentry=rootsentry.cli:main",
        ],
    },
)
