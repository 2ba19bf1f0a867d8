"""Render a DOT document with a minimal ``dot``-compatible command line."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO, Optional

from . import __version__
from .config import Settings
from .engines import FORMAT_SVG, RenderEngine, RenderError, base_format, create_engine, diagnostic
from .invocation import ConfigurationError, Invocation, parse_args
from .postprocess import px_to_pt
from .streams import open_input, open_output, read_all, write_all

logger = logging.getLogger(__name__)

USAGE = "usage: dot-lite [-V] [-o<out-filename>] [-T<type>] [<in-filename>]"
VERSION_LINE = "dot - graphviz-java-cli v{self_version} (graphviz-java v{engine_version})"


@dataclass(frozen=True)
class VersionInfo:
    self_version: str
    engine_version: str

    @classmethod
    def load(cls, engine: RenderEngine) -> "VersionInfo":
        return cls(self_version=__version__, engine_version=engine.version())

    def line(self) -> str:
        return VERSION_LINE.format(self_version=self.self_version, engine_version=self.engine_version)


@dataclass(frozen=True)
class RenderRequest:
    source: BinaryIO
    sink: BinaryIO
    format: str
    input_path: Optional[str] = None
    output_path: Optional[str] = None

    @property
    def to_stdout(self) -> bool:
        return self.output_path is None


class DotLite:
    """One command-line invocation: parse on construction, then :meth:`run` once.

    Raises :class:`ConfigurationError` for bad arguments,
    :class:`~dotlite.streams.InputStreamError` or
    :class:`~dotlite.streams.OutputStreamError` when a stream cannot be
    opened, read or written, and :class:`RenderError` with the engine's
    diagnostic when rendering fails.
    """

    def __init__(
        self,
        *args: Optional[str],
        settings: Optional[Settings] = None,
        engine: Optional[RenderEngine] = None,
        versions: Optional[VersionInfo] = None,
    ) -> None:
        self.invocation: Invocation = parse_args(args)
        self.settings = settings or Settings()
        self.engine = engine or create_engine(self.settings)
        self.versions = versions

    @property
    def format(self) -> str:
        return self.invocation.format or self.engine.default_format

    def run(self) -> None:
        if self.invocation.show_version:
            versions = self.versions or VersionInfo.load(self.engine)
            print(versions.line())
            return

        fmt = self.format
        if not self.engine.supports(fmt):
            raise ConfigurationError(self.engine.unsupported_message(fmt))

        with open_input(self.invocation.input_path) as source, open_output(self.invocation.output_path) as sink:
            self._render(
                RenderRequest(
                    source=source,
                    sink=sink,
                    format=fmt,
                    input_path=self.invocation.input_path,
                    output_path=self.invocation.output_path,
                )
            )

    def _render(self, request: RenderRequest) -> None:
        document = read_all(request.source, request.input_path)
        result = self.engine.render(document, request.format)
        if not result.ok:
            raise RenderError(diagnostic(result))

        payload = result.payload
        if request.to_stdout and base_format(request.format) == FORMAT_SVG:
            payload = px_to_pt(payload)
        write_all(request.sink, payload, request.output_path)
        logger.debug("wrote %d bytes of %s", len(payload), request.format)


def render(document: bytes, fmt: Optional[str] = None, *, engine: Optional[RenderEngine] = None) -> bytes:
    """Render ``document`` in memory and return the payload."""
    engine = engine or create_engine(Settings())
    fmt = fmt or engine.default_format
    if not engine.supports(fmt):
        raise ConfigurationError(engine.unsupported_message(fmt))
    result = engine.render(document, fmt)
    if not result.ok:
        raise RenderError(diagnostic(result))
    return result.payload

