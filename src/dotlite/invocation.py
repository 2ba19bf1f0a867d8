"""Parse a dot-style command line into an :class:`Invocation`."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

OPTION_OUT = "-o"
OPTION_TYPE = "-T"
OPTION_VERSION = "-V"

SWITCH_PREFIX = "-"
SWITCH_LENGTH = len(SWITCH_PREFIX) + 1


class ConfigurationError(ValueError):
    """Raised for invalid command lines or settings, before any I/O happens."""


@dataclass(frozen=True)
class Flag:
    name: str
    value: str


@dataclass(frozen=True)
class Positional:
    value: str


Token = Union[Flag, Positional]


@dataclass(frozen=True)
class Invocation:
    input_path: Optional[str] = None
    output_path: Optional[str] = None
    format: Optional[str] = None
    show_version: bool = False
    options: Dict[str, str] = field(default_factory=dict)


def parse_token(arg: str) -> Token:
    """Classify one raw token.

    ``-Tsvg`` becomes ``Flag("-T", "svg")``; a bare switch such as ``-V`` is a
    presence flag whose value is the switch itself.
    """
    if arg.startswith(SWITCH_PREFIX):
        if len(arg) > SWITCH_LENGTH:
            return Flag(arg[:SWITCH_LENGTH], arg[SWITCH_LENGTH:])
        return Flag(arg, arg)
    return Positional(arg)


def parse_args(args: Iterable[Optional[str]]) -> Invocation:
    options: Dict[str, str] = {}
    files: List[str] = []
    for arg in args:
        if arg is None:
            continue
        token = parse_token(arg)
        if isinstance(token, Flag):
            # repeated switches: the last one wins
            options[token.name] = token.value
        else:
            files.append(token.value)

    if len(files) > 1:
        raise ConfigurationError(f"only one input file supported, but got {files}")

    return Invocation(
        input_path=files[0] if files else None,
        output_path=options.get(OPTION_OUT),
        format=options.get(OPTION_TYPE),
        show_version=OPTION_VERSION in options,
        options=options,
    )
