#!/usr/bin/env python3
# Copyright (C) 2026 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Turn a metric value and its thresholds into the state of the check

The functions in here do not write any output and do not exit, they only
decide. See pgcachehit.active_checks for the command line plug-in."""

from collections.abc import Callable

from pgcachehit.thresholds import ThresholdSpec
from pgcachehit.type_defs import CheckResult, MetricValue, State
from pgcachehit.utils.exceptions import MetricSourceError
from pgcachehit.utils.log import logger, VERBOSE


def evaluate(
    metric: MetricValue,
    critical: ThresholdSpec | None = None,
    warning: ThresholdSpec | None = None,
) -> CheckResult:
    # critical always wins, even if the warning range is the narrower one
    if critical is not None and not critical.check(metric.value):
        logger.log(
            VERBOSE,
            "%s: %s violates the critical range %s",
            metric.label,
            metric.render(),
            critical,
        )
        return CheckResult.from_summary(State.CRITICAL, metric.render())

    if warning is not None and not warning.check(metric.value):
        logger.log(
            VERBOSE, "%s: %s violates the warning range %s", metric.label, metric.render(), warning
        )
        return CheckResult.from_summary(State.WARNING, metric.render())

    return CheckResult.from_summary(State.OK, metric.render())


def probe(
    fetch: Callable[[], MetricValue],
    critical: ThresholdSpec | None = None,
    warning: ThresholdSpec | None = None,
) -> CheckResult:
    """Fetch the metric once and evaluate it

    A failing metric source ends the check with UNKNOWN, the thresholds are
    not looked at in that case. There are no retries.
    """
    try:
        metric = fetch()
    except MetricSourceError as e:
        logger.debug("Fetching the metric failed", exc_info=True)
        return CheckResult.from_summary(State.UNKNOWN, str(e))

    logger.log(VERBOSE, "%s: cache hit ratio is %s%%", metric.label, metric.render())
    return evaluate(metric, critical, warning)
