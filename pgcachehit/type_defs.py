#!/usr/bin/env python3
# Copyright (C) 2026 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import NamedTuple

__all__ = [
    "CheckResult",
    "MetricValue",
    "State",
]


class State(enum.IntEnum):
    """Service states of the monitoring plug-in API, the value is the exit code"""

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


@dataclass(frozen=True)
class MetricValue:
    value: float
    label: str

    def render(self) -> str:
        """Render the value without trailing zeros

        >>> MetricValue(100.0, "Database postgres").render()
        '100'
        >>> MetricValue(97.5, "Table orders").render()
        '97.5'
        """
        return format(Decimal(repr(self.value)).normalize(), "f")


class CheckResult(NamedTuple):
    state: State
    output: str

    @classmethod
    def from_summary(cls, state: State, summary: str) -> CheckResult:
        """The output of an active check is a single line

        >>> CheckResult.from_summary(State.UNKNOWN, "connection failed\\nDETAIL: timeout").output
        'UNKNOWN - connection failed DETAIL: timeout'
        """
        return cls(state, f"{state.name} - {' '.join(summary.splitlines())}")
