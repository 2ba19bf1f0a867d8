"""Rendering engines behind the dot-lite command line.

Two interchangeable backends are provided:

``graphviz``
    Renders through the ``graphviz`` package. Failures come back as exception
    values carrying Graphviz's own stderr, so their message is used directly.

``lite``
    Runs the ``dot`` executable directly and only supports SVG. A failed run
    only leaves the captured stderr behind; the diagnostic is scraped from it
    by locating the ``Error:`` marker Graphviz prints ahead of the message.
    The child process can be given memory and stack budgets through the
    ``TOTAL_MEMORY`` / ``TOTAL_STACK`` settings.
"""
from __future__ import annotations

import logging
import re
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Mapping, Optional

import graphviz

from .config import ENGINE_GRAPHVIZ, ENGINE_LITE, ENV_TOTAL_MEMORY, ENV_TOTAL_STACK, Settings
from .resources import load_limits

try:
    import resource
except ImportError:  # pragma: no cover - not available on Windows
    resource = None

logger = logging.getLogger(__name__)

FORMAT_SVG = "svg"
FORMAT_PNG = "png"

UNKNOWN_VERSION = "???"
UNKNOWN_ERROR = "unknown error"
ERROR_MARKER = re.compile(r"Error: (.*)", re.DOTALL)

_SVG_ROOT = re.compile(rb"<svg[\s>]")
_DOT_VERSION = re.compile(r"version\s+(\S+)")


class RenderError(RuntimeError):
    """Raised when the engine rejects the document or fails while rendering."""


@dataclass(frozen=True)
class RenderResult:
    """Outcome of one render: a payload, a structured error, or opaque failure text."""

    payload: Optional[bytes] = None
    error: Optional[Exception] = None
    failure: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.payload is not None


class RenderEngine(ABC):
    name: str
    default_format: str

    @property
    @abstractmethod
    def formats(self) -> FrozenSet[str]:
        ...

    def supports(self, fmt: str) -> bool:
        return fmt in self.formats

    def unsupported_message(self, fmt: str) -> str:
        return f"unsupported output format: {fmt}"

    @abstractmethod
    def render(self, document: bytes, fmt: str) -> RenderResult:
        ...

    @abstractmethod
    def version(self) -> str:
        ...


class GraphvizEngine(RenderEngine):
    name = ENGINE_GRAPHVIZ
    default_format = FORMAT_PNG

    def __init__(self, layout: str = "dot") -> None:
        self.layout = layout

    @property
    def formats(self) -> FrozenSet[str]:
        return frozenset(graphviz.FORMATS)

    def supports(self, fmt: str) -> bool:
        """Accept ``format[:renderer[:formatter]]`` like ``dot -T``."""
        parts = fmt.split(":")
        if len(parts) > 3 or parts[0] not in self.formats:
            return False
        if len(parts) > 1 and parts[1] not in graphviz.RENDERERS:
            return False
        return len(parts) < 3 or parts[2] in graphviz.FORMATTERS

    def render(self, document: bytes, fmt: str) -> RenderResult:
        output_format, renderer, formatter = (fmt.split(":") + [None, None])[:3]
        logger.debug("rendering %d bytes as %s with graphviz.pipe", len(document), fmt)
        try:
            payload = graphviz.pipe(
                self.layout,
                output_format,
                document,
                renderer=renderer,
                formatter=formatter,
                quiet=True,
            )
        except graphviz.CalledProcessError as exc:
            return RenderResult(error=RenderError(_stderr_text(exc.stderr) or str(exc)))
        except graphviz.ExecutableNotFound as exc:
            return RenderResult(error=RenderError(str(exc)))
        except OSError as exc:
            return RenderResult(error=RenderError(f"failed to execute Graphviz: {exc}"))
        return RenderResult(payload=_normalize(payload, fmt))

    def version(self) -> str:
        try:
            return ".".join(str(part) for part in graphviz.version())
        except (RuntimeError, subprocess.CalledProcessError) as exc:
            logger.debug("cannot get version info: %s", exc)
            return UNKNOWN_VERSION


class LiteEngine(RenderEngine):
    name = ENGINE_LITE
    default_format = FORMAT_SVG

    def __init__(self, limits: Optional[Mapping[str, str]] = None) -> None:
        bootstrap = load_limits()
        for key, value in (limits or {}).items():
            bootstrap = configure(bootstrap, key, value)
        self.limits = read_limits(bootstrap)

    @property
    def formats(self) -> FrozenSet[str]:
        return frozenset({FORMAT_SVG})

    def unsupported_message(self, fmt: str) -> str:
        return "only svg type is supported"

    def render(self, document: bytes, fmt: str) -> RenderResult:
        dot_path = shutil.which("dot")
        if not dot_path:
            return RenderResult(error=RenderError("failed to execute Graphviz: dot executable not found on PATH"))
        logger.debug("rendering %d bytes as %s with %s", len(document), fmt, dot_path)
        try:
            proc = subprocess.run(
                [dot_path, f"-T{fmt}"],
                input=document,
                capture_output=True,
                check=False,
                preexec_fn=_limit_resources(self.limits),
            )
        except (OSError, subprocess.SubprocessError) as exc:
            return RenderResult(error=RenderError(f"failed to execute Graphviz: {exc}"))
        if proc.returncode != 0:
            return RenderResult(failure=_stderr_text(proc.stderr))
        return RenderResult(payload=_normalize(proc.stdout, fmt))

    def version(self) -> str:
        dot_path = shutil.which("dot")
        if not dot_path:
            logger.debug("cannot get version info: dot executable not found")
            return UNKNOWN_VERSION
        try:
            proc = subprocess.run([dot_path, "-V"], capture_output=True, text=True, check=False)
        except OSError as exc:
            logger.debug("cannot get version info: %s", exc)
            return UNKNOWN_VERSION
        match = _DOT_VERSION.search(proc.stderr or proc.stdout or "")
        return match.group(1) if match else UNKNOWN_VERSION


def create_engine(settings: Settings) -> RenderEngine:
    if settings.engine == ENGINE_LITE:
        return LiteEngine(settings.limits())
    return GraphvizEngine()


def diagnostic(result: RenderResult) -> str:
    """Human-readable message for a failed :class:`RenderResult`."""
    if result.error is not None:
        message = str(result.error)
    else:
        message = extract_diagnostic(result.failure or "")
    return sanitize_message(message)


def extract_diagnostic(failure: str) -> str:
    match = ERROR_MARKER.search(failure)
    return match.group(1) if match else UNKNOWN_ERROR


def sanitize_message(message: str) -> str:
    message = message.strip()
    return message[:-1] if message.endswith("}") else message


def configure(bootstrap: str, key: str, value: Optional[str]) -> str:
    """Replace the default of ``<name>["key"]||<digits>`` in ``bootstrap`` with ``value``."""
    if value is None:
        return bootstrap
    pattern = re.compile(r'(\w+\["%s"\]\|\|)(\d+)' % re.escape(key))
    return pattern.sub(lambda match: match.group(1) + value, bootstrap, count=1)


def read_limits(bootstrap: str) -> Dict[str, int]:
    return {key: int(value) for key, value in re.findall(r'\w+\["(\w+)"\]\|\|(\d+)', bootstrap)}


def _limit_resources(limits: Mapping[str, int]) -> Optional[Callable[[], None]]:
    if resource is None or not any(limits.values()):
        return None
    wanted = [
        (resource.RLIMIT_AS, limits.get(ENV_TOTAL_MEMORY, 0)),
        (resource.RLIMIT_STACK, limits.get(ENV_TOTAL_STACK, 0)),
    ]
    logger.debug("applying resource limits %s", dict(limits))

    def apply() -> None:
        for rlimit, value in wanted:
            if not value:
                continue
            _soft, hard = resource.getrlimit(rlimit)
            if hard != resource.RLIM_INFINITY:
                value = min(value, hard)
            resource.setrlimit(rlimit, (value, hard))

    return apply


def base_format(fmt: str) -> str:
    """``svg`` for ``svg:cairo``; the output format without renderer or formatter."""
    return fmt.split(":", 1)[0]


def _normalize(payload: bytes, fmt: str) -> bytes:
    # Graphviz puts an XML declaration, DOCTYPE and comments ahead of the root.
    if base_format(fmt) != FORMAT_SVG:
        return payload
    match = _SVG_ROOT.search(payload)
    return payload[match.start():] if match else payload


def _stderr_text(stderr: Optional[bytes]) -> str:
    if not stderr:
        return ""
    if isinstance(stderr, bytes):
        return stderr.decode("utf-8", errors="replace").strip()
    return str(stderr).strip()
