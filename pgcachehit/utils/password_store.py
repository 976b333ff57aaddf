#!/usr/bin/env python3
# Copyright (C) 2026 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Look up secrets in a password store file instead of passing them on the
command line, where they would show up in the process list.

The store contains one secret per line:

  <password id>:<secret>

"""

from pathlib import Path

from pgcachehit.utils.exceptions import ProbeBailOut


def load(path: Path) -> dict[str, str]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ProbeBailOut(f"pwstore: Cannot read password store {path}: {e.strerror}") from e

    passwords = {}
    for line in content.splitlines():
        if not line.strip():
            continue
        ident, sep, password = line.partition(":")
        if not sep:
            raise ProbeBailOut(f"pwstore: Invalid line in password store {path}")
        passwords[ident] = password
    return passwords


def lookup(path: Path, password_id: str) -> str:
    try:
        return load(path)[password_id]
    except KeyError:
        raise ProbeBailOut(f"pwstore: Password '{password_id}' does not exist") from None


def split_reference(reference: str) -> tuple[str, Path]:
    """Split a reference of the form <password id>:<file>

    >>> password_id, path = split_reference("pg_monitor:/etc/pwstore")
    >>> password_id, path.name
    ('pg_monitor', 'pwstore')
    """
    password_id, sep, file = reference.partition(":")
    if not sep or not password_id or not file:
        raise ProbeBailOut(f"pwstore: Invalid password reference: {reference}")
    return password_id, Path(file)
