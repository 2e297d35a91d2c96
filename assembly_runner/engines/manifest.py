"""What an engine plugin registers: its config model and how to open it."""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass

from pydantic import BaseModel

from assembly_runner.engines.base import TestEngine


@dataclass(frozen=True, kw_only=True)
class EngineManifest[ConfigT: BaseModel]:
    """Registration record for a test engine.

    ``config_cls`` validates the assembly's ``-configfile`` contents (or the
    defaults when no file is given). ``engine_factory`` turns that config into
    an async context manager yielding an engine; the runner opens one engine
    per assembly and closes it once the assembly has been reported.
    """

    config_cls: type[ConfigT]
    engine_factory: Callable[[ConfigT], AbstractAsyncContextManager[TestEngine]]
