#!/usr/bin/env python3
# Copyright (C) 2026 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""PostgreSQL cache hit ratio active check.

The package is split into the pure decision logic (thresholds, evaluator) and
the glue around it (metric source, command line). Only the active check module
writes to stdout and decides the exit code."""

__version__ = "1.0.0"
