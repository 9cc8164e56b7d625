# -*- coding: utf-8 -*-
"""mlprocess.cli

    mlprocess [-c SCENARIO] [--set KEY=VAL ...] <command> [args]

Global options may appear anywhere on the line. Each command is a
`fn(*, argv, cfg) -> int` resolved lazily from COMMANDS, so `kinds` works without
a scenario file and a broken task module only breaks the commands importing it.

Exit codes: 0 ok, 1 scenario or command failure, 2 usage error.
"""
from __future__ import annotations

import argparse
import importlib
import sys
import traceback
from typing import Any, Callable, Dict, List, NamedTuple, Optional

import yaml

from .config import load_config


class Command(NamedTuple):
    module: str
    func: str
    needs_scenario: bool = True


COMMANDS: Dict[str, Command] = {
    "run":   Command("mlprocess.runner", "run"),
    "show":  Command("mlprocess.scenario", "show"),
    "kinds": Command("mlprocess.runner", "kinds", needs_scenario=False),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mlprocess", add_help=False, allow_abbrev=False)
    parser.add_argument("-c", "--config", default="./scenario.yaml", help="scenario YAML file")
    parser.add_argument("--set", dest="overrides", metavar="KEY=VAL", action="append", default=[],
                        help="override a scenario value, e.g. run.workers=4 (repeatable)")
    return parser


def _usage() -> None:
    print("Usage: mlprocess [-c SCENARIO] [--set KEY=VAL ...] <command> [args]")
    print("Commands:", ", ".join(sorted(COMMANDS)))


def _split_command(rest: List[str]) -> tuple[Optional[str], List[str]]:
    """First bare word left over by the global parser is the command; the tail is its argv."""
    for i, token in enumerate(rest):
        if not token.startswith("-"):
            return token, rest[i + 1:]
    return None, []


def _resolve(name: str) -> Callable[..., int]:
    cmd = COMMANDS[name]
    return getattr(importlib.import_module(cmd.module), cmd.func)


def main(argv: Optional[List[str]] = None) -> int:
    args, rest = build_parser().parse_known_args(sys.argv[1:] if argv is None else argv)
    name, sub_argv = _split_command(rest)
    if name is None:
        _usage()
        return 2
    if name not in COMMANDS:
        print(f"[cli] ERROR: unknown command: {name}", file=sys.stderr)
        _usage()
        return 2

    cfg: Optional[Dict[str, Any]] = None
    if COMMANDS[name].needs_scenario:
        try:
            cfg = load_config(args.config, args.overrides)
        except (OSError, ValueError, yaml.YAMLError) as exc:
            print(f"[cli] ERROR: cannot load scenario {args.config}: {exc}", file=sys.stderr)
            return 1

    try:
        return int(_resolve(name)(argv=sub_argv, cfg=cfg))
    except Exception as exc:
        print(f"[cli] ERROR: command '{name}' failed: {exc}", file=sys.stderr)
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
