#!/usr/bin/env python3
# Copyright (C) 2026 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""check_pgsql_cachehit - Monitor the cache hit ratio of a PostgreSQL database, table or index"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable, Sequence
from typing import NoReturn

from pydantic import BaseModel, field_validator, ValidationError

from pgcachehit import __version__
from pgcachehit.evaluator import probe
from pgcachehit.metric_source import bind, MetricSourceProto, PostgresCacheHitSource, TargetType
from pgcachehit.thresholds import parse_optional
from pgcachehit.type_defs import CheckResult, State
from pgcachehit.utils import password_store
from pgcachehit.utils.exceptions import ProbeBailOut, ProbeException
from pgcachehit.utils.log import logger, setup_console_logging, verbosity_to_log_level

PROG = "check_pgsql_cachehit"

USAGE = f"{PROG} -h <DB Address> --username <DB User> --password <DB Password> -d <DB Name>"


class Args(BaseModel):
    host: str
    database: str
    username: str
    password: None | str
    password_reference: None | str
    port: int
    timeout: int
    critical: None | str
    warning: None | str
    type: TargetType
    rel: None | str
    verbose: int
    debug: bool

    @field_validator("port")
    @classmethod
    def _valid_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError("must be between 1 and 65535")
        return value

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive number of seconds")
        return value

    @property
    def relation(self) -> str:
        return self.database if self.rel is None else self.rel

    def resolve_secret(self) -> str:
        if self.password is not None:
            return self.password
        if self.password_reference is not None:
            password_id, file = password_store.split_reference(self.password_reference)
            return password_store.lookup(file, password_id)
        raise ProbeBailOut("Either --password or --password-reference is required")


class MissingArguments(ProbeBailOut):
    def __init__(self, flags: Sequence[str]) -> None:
        super().__init__(f"Missing required arguments: {', '.join(flags)}")
        self.flags = flags


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        # exit code 2 of argparse would mean CRITICAL to the monitoring core
        raise ProbeBailOut(message)


MetricSourceFactory = Callable[[Args], MetricSourceProto]


def _create_parser() -> argparse.ArgumentParser:
    # -h is the database host, so the help is on -?
    parser = _ArgumentParser(prog=PROG, usage=USAGE, description=__doc__, add_help=False)

    required = parser.add_argument_group("required")
    required.add_argument("-h", "--host", metavar="ADDRESS", help="DB address")
    required.add_argument("--username", metavar="USER", help="DB user")
    required.add_argument("-d", "--database", metavar="NAME", help="DB name")
    secret = required.add_mutually_exclusive_group()
    secret.add_argument("--password", metavar="PASSWORD", help="DB password")
    secret.add_argument(
        "--password-reference",
        metavar="ID:FILE",
        help="Use the password stored with this ID in a password store file",
    )

    optional = parser.add_argument_group("optional")
    optional.add_argument("-c", "--critical", metavar="RANGE", help="Critical threshold")
    optional.add_argument("-w", "--warning", metavar="RANGE", help="Warning threshold")
    optional.add_argument(
        "--type",
        type=TargetType,
        choices=TargetType,
        default=TargetType.DB,
        metavar="TYPE",
        help="Monitoring target, one of db, table or index (default: db)",
    )
    optional.add_argument(
        "--rel",
        metavar="RELATION",
        help="Relation target, a DB name or a table name, optionally as schema.table "
        "(default: DB name)",
    )
    optional.add_argument(
        "-p", "--port", type=int, default=5432, metavar="PORT", help="DB port (default: 5432)"
    )
    optional.add_argument(
        "-t",
        "--timeout",
        type=int,
        default=10,
        metavar="SECONDS",
        help="Timeout for connecting and querying (default: 10)",
    )
    optional.add_argument(
        "-v", "--verbose", action="count", default=0, help="Log to stderr, repeat for more"
    )
    optional.add_argument("--debug", action="store_true", help="Raise python exceptions.")
    optional.add_argument("-V", "--version", action="store_true", help="Show the version")
    optional.add_argument("-?", "--help", action="store_true", help="Show this help")
    return parser


def _version_line() -> str:
    return f"{PROG} Version {__version__}\n"


def version_text() -> str:
    return f"{_version_line()}usage: {USAGE}\n"


def help_text() -> str:
    return _version_line() + "\n" + _create_parser().format_help()


def parse_arguments(argv: Sequence[str]) -> argparse.Namespace:
    return _create_parser().parse_args(argv)


def validate_arguments(namespace: argparse.Namespace) -> Args:
    missing = [
        flag
        for attr, flag in (("host", "-h"), ("username", "--username"), ("database", "-d"))
        if getattr(namespace, attr) is None
    ]
    if namespace.password is None and namespace.password_reference is None:
        missing.append("--password")
    if missing:
        raise MissingArguments(missing)

    try:
        return Args.model_validate(vars(namespace))
    except ValidationError as e:
        raise ProbeBailOut(
            ", ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
        ) from e


def _make_postgres_source(args: Args) -> MetricSourceProto:
    return PostgresCacheHitSource(
        host=args.host,
        port=args.port,
        dbname=args.database,
        user=args.username,
        password=args.resolve_secret(),
        timeout=args.timeout,
    )


def check_pgsql_cachehit(args: Args, make_source: MetricSourceFactory) -> CheckResult:
    # parse the thresholds first, a broken one must not cause a connection attempt
    critical = parse_optional(args.critical)
    warning = parse_optional(args.warning)
    logger.debug("Critical range: %s, warning range: %s", critical, warning)

    return probe(bind(make_source(args), args.type, args.relation), critical, warning)


def _output_check_result(s: str) -> None:
    sys.stdout.write("%s\n" % s)


def main(
    argv: Sequence[str] | None = None,
    make_source: MetricSourceFactory | None = None,
    *,
    missing_arguments_state: State = State.UNKNOWN,
) -> int:
    """Run the check, write its single line and return the exit code

    If required arguments are missing, the help is shown and the check exits
    with missing_arguments_state."""
    try:
        namespace = parse_arguments(sys.argv[1:] if argv is None else argv)
        if namespace.version:
            sys.stdout.write(version_text())
            return int(State.OK)
        if namespace.help:
            sys.stdout.write(help_text())
            return int(State.OK)
        args = validate_arguments(namespace)
    except MissingArguments as e:
        sys.stdout.write(help_text())
        sys.stderr.write(f"{e}\n")
        return int(missing_arguments_state)
    except ProbeBailOut as e:
        _output_check_result(CheckResult.from_summary(State.UNKNOWN, str(e)).output)
        return int(State.UNKNOWN)

    setup_console_logging(verbosity_to_log_level(args.verbose))

    try:
        result = check_pgsql_cachehit(args, make_source or _make_postgres_source)
    except ProbeException as e:
        if args.debug:
            raise
        result = CheckResult.from_summary(State.UNKNOWN, str(e))
    except Exception as e:
        if args.debug:
            raise
        logger.debug("Unhandled exception", exc_info=True)
        result = CheckResult.from_summary(State.UNKNOWN, f"Unhandled exception: {e}")

    _output_check_result(result.output)
    return int(result.state)


if __name__ == "__main__":
    sys.exit(main())
