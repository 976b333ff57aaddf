#!/usr/bin/env python3
# Copyright (C) 2026 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""User-defined exceptions of the cache hit check."""

__all__ = [
    "DataSourceConnectionError",
    "MetricSourceError",
    "ProbeBailOut",
    "ProbeException",
    "RelationNotFoundError",
    "ThresholdParseError",
]


# never used directly in the code. Just some wrapper to make all of our
# exceptions handleable with one call
class ProbeException(Exception):
    pass


class ThresholdParseError(ProbeException, ValueError):
    """A range expression given as warning or critical threshold is malformed."""


class MetricSourceError(ProbeException):
    """The metric source could not deliver a value."""


class RelationNotFoundError(MetricSourceError):
    pass


class DataSourceConnectionError(MetricSourceError):
    pass


# This is raised to print an error message and then end the program.
# The program should catch this at top level and exit with exit code 3,
# in order to be compatible with monitoring plug-in API.
class ProbeBailOut(ProbeException):
    pass
