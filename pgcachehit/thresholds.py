#!/usr/bin/env python3
# Copyright (C) 2026 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Nagios range expressions as used for warning and critical thresholds

See https://nagios-plugins.org/doc/guidelines.html#THRESHOLDFORMAT

  10        alert if value < 0 or > 10
  10:       alert if value < 10
  ~:10      alert if value > 10
  10:20     alert if value < 10 or > 20
  @10:20    alert if 10 <= value <= 20
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Final

from pgcachehit.utils.exceptions import ThresholdParseError

_NUMBER: Final = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


@dataclass(frozen=True)
class ThresholdSpec:
    lower: float
    upper: float
    invert: bool = False

    def __post_init__(self) -> None:
        if math.isnan(self.lower) or math.isnan(self.upper):
            raise ThresholdParseError("Range bounds must be numbers")
        if self.lower > self.upper:
            raise ThresholdParseError(
                f"Start of range ({_render_bound(self.lower)}) is greater than its end "
                f"({_render_bound(self.upper)})"
            )

    @classmethod
    def parse(cls, raw: str) -> ThresholdSpec:
        """
        >>> ThresholdSpec.parse("@10:20")
        ThresholdSpec(lower=10.0, upper=20.0, invert=True)
        >>> ThresholdSpec.parse("50:")
        ThresholdSpec(lower=50.0, upper=inf, invert=False)
        """
        text = raw.strip()
        invert = text.startswith("@")
        if invert:
            text = text[1:]

        if not text:
            raise ThresholdParseError(f"Empty range: {raw!r}")

        if ":" not in text:
            # the bare number is the end of a range starting at zero
            return cls(0.0, _parse_number(text, raw), invert)

        start, sep, end = text.partition(":")
        if ":" in end:
            raise ThresholdParseError(f"Too many colons in range: {raw!r}")
        if not start and not end:
            raise ThresholdParseError(f"Range without bounds: {raw!r}")

        return cls(
            -math.inf if start in ("", "~") else _parse_number(start, raw),
            math.inf if not end else _parse_number(end, raw),
            invert,
        )

    def check(self, value: float) -> bool:
        """Tell whether the value is acceptable, i.e. does not cause an alert

        Values on a bound count as inside of the range.

        >>> ThresholdSpec.parse("10:90").check(90)
        True
        >>> ThresholdSpec.parse("@10:90").check(90)
        False
        """
        inside = self.lower <= value <= self.upper
        return not inside if self.invert else inside

    def __str__(self) -> str:
        return "%s%s:%s" % (
            "@" if self.invert else "",
            "~" if self.lower == -math.inf else _render_bound(self.lower),
            "" if self.upper == math.inf else _render_bound(self.upper),
        )


def parse_optional(raw: str | None) -> ThresholdSpec | None:
    return None if raw is None else ThresholdSpec.parse(raw)


def _parse_number(token: str, raw: str) -> float:
    if not _NUMBER.fullmatch(token):
        raise ThresholdParseError(f"Invalid number {token!r} in range: {raw!r}")
    number = float(token)
    if not math.isfinite(number):
        raise ThresholdParseError(f"Number {token!r} out of range in: {raw!r}")
    return number


def _render_bound(bound: float) -> str:
    return "%g" % bound
