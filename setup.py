#!/usr/bin/env python3
# Copyright (C) 2026 vdimon authors - License: GNU General Public License v2
# This file is part of vdimon. It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

from setuptools import find_packages, setup

setup(
    name="vdimon",
    version="1.0.0",
    description="Monitoring plug-ins for virtual desktop pools",
    packages=find_packages(include=["vdimon", "vdimon.*"]),
    python_requires=">=3.10",
    install_requires=["requests>=2.28", "pydantic>=2.0"],
    extras_require={"test": ["pytest"]},
    entry_points={
        "console_scripts": [
            "check_desktop_pool = vdimon.active_checks.check_desktop_pool:main",
        ],
    },
)
