"""Process settings read from the environment."""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from .invocation import ConfigurationError

ENV_ENGINE = "DOT_LITE_ENGINE"
ENV_DEBUG = "DOT_LITE_DEBUG"
ENV_TOTAL_MEMORY = "TOTAL_MEMORY"
ENV_TOTAL_STACK = "TOTAL_STACK"

ENGINE_GRAPHVIZ = "graphviz"
ENGINE_LITE = "lite"
ENGINES = (ENGINE_GRAPHVIZ, ENGINE_LITE)


@dataclass(frozen=True)
class Settings:
    engine: str = ENGINE_GRAPHVIZ
    total_memory: Optional[str] = None
    total_stack: Optional[str] = None
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        engine = env.get(ENV_ENGINE) or ENGINE_GRAPHVIZ
        if engine not in ENGINES:
            raise ConfigurationError(
                f"unknown engine {engine!r} in {ENV_ENGINE}, expected one of {', '.join(ENGINES)}"
            )
        return cls(
            engine=engine,
            total_memory=_budget(env, ENV_TOTAL_MEMORY),
            total_stack=_budget(env, ENV_TOTAL_STACK),
            debug=env.get(ENV_DEBUG) == "1",
        )

    def limits(self) -> dict[str, str]:
        """Configured resource budgets keyed by their bootstrap name."""
        values = {ENV_TOTAL_MEMORY: self.total_memory, ENV_TOTAL_STACK: self.total_stack}
        return {key: value for key, value in values.items() if value is not None}


def _budget(env: Mapping[str, str], key: str) -> Optional[str]:
    value = env.get(key)
    if value is None:
        return None
    value = value.strip()
    if not re.fullmatch(r"\d+", value):
        raise ConfigurationError(f"{key} must be a number of bytes, got {value!r}")
    return value
