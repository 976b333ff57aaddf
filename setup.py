#!/usr/bin/env python3
# Copyright (C) 2026 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

from setuptools import find_packages, setup

setup(
    name="check-pgsql-cachehit",
    version="1.0.0",
    description="Active check for the cache hit ratio of PostgreSQL databases, tables and indexes",
    packages=find_packages(include=["pgcachehit", "pgcachehit.*"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=["psycopg[binary]>=3.1", "pydantic>=2"],
    extras_require={"test": ["pytest"]},
    entry_points={
        "console_scripts": [
            "check_pgsql_cachehit=pgcachehit.active_checks.check_pgsql_cachehit:main",
        ],
    },
)
