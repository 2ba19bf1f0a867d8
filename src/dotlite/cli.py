"""Command-line interface for dot-lite."""
from __future__ import annotations

import logging
import os
import sys
import traceback
from dataclasses import dataclass
from typing import Iterable, Optional

from .config import ENV_DEBUG, ENV_ENGINE, Settings
from .dotlite import USAGE, DotLite
from .engines import RenderError, create_engine
from .invocation import ConfigurationError
from .streams import InputStreamError, OutputStreamError


@dataclass
class CliError(Exception):
    code: str
    message: str
    hint: Optional[str] = None
    exit_code: int = 1


def _error_from_exception(exc: Exception) -> CliError:
    if isinstance(exc, ConfigurationError):
        return CliError(
            "E_ARGS",
            str(exc),
            hint=USAGE,
            exit_code=2,
        )
    if isinstance(exc, RenderError):
        return CliError(
            "E_RENDER",
            str(exc),
            hint=f"Check the DOT input; set {ENV_ENGINE} to switch rendering engines.",
            exit_code=3,
        )
    if isinstance(exc, InputStreamError):
        return CliError(
            "E_IO_READ",
            f"failed to read input file: {exc.filename or '<stdin>'}",
            hint=exc.strerror,
            exit_code=2,
        )
    if isinstance(exc, OutputStreamError):
        return CliError(
            "E_IO_WRITE",
            f"failed to write output file: {exc.filename or '<stdout>'}",
            hint=exc.strerror,
            exit_code=4,
        )
    return CliError(
        "E_INTERNAL",
        str(exc) or exc.__class__.__name__,
        hint=f"Re-run with {ENV_DEBUG}=1 to see traceback.",
        exit_code=1,
    )


def _emit_error(err: CliError) -> None:
    sys.stderr.write(f"error[{err.code}]: {err.message}\n")
    if err.hint:
        sys.stderr.write(f"hint: {err.hint}\n")


def main(argv: Optional[Iterable[str]] = None) -> int:
    raw_argv = list(argv) if argv is not None else sys.argv[1:]

    if not raw_argv:
        print(USAGE)
        return 0

    settings: Optional[Settings] = None
    try:
        settings = Settings.from_env()
        if settings.debug:
            logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="%(name)s: %(message)s")
        cli = DotLite(*raw_argv, settings=settings, engine=create_engine(settings))
        cli.run()
        return 0
    except Exception as exc:
        err = _error_from_exception(exc)
        _emit_error(err)
        # settings themselves may be what failed to load
        debug_enabled = settings.debug if settings is not None else os.getenv(ENV_DEBUG) == "1"
        if debug_enabled:
            traceback.print_exc(file=sys.stderr)
        return err.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
