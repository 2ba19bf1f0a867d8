"""Public API for dot-lite."""
__version__ = "0.1.0"

from .config import Settings
from .dotlite import DotLite, VersionInfo, render
from .engines import GraphvizEngine, LiteEngine, RenderEngine, RenderError, RenderResult, create_engine
from .invocation import ConfigurationError, Invocation, parse_args
from .streams import InputStreamError, OutputStreamError, StreamError

__all__ = [
    "ConfigurationError",
    "DotLite",
    "GraphvizEngine",
    "InputStreamError",
    "Invocation",
    "LiteEngine",
    "OutputStreamError",
    "RenderEngine",
    "RenderError",
    "RenderResult",
    "Settings",
    "StreamError",
    "VersionInfo",
    "create_engine",
    "parse_args",
    "render",
]
