"""Loading of per-assembly engine configuration files."""

import asyncio
import logging

import yaml
from pydantic import BaseModel, ValidationError

from assembly_runner.models.project import AssemblyRef

log = logging.getLogger(__name__)


class ConfigFileError(Exception):
    """Raised when an assembly's config file cannot be read or validated."""


async def load_engine_config[ConfigT: BaseModel](
    config_cls: type[ConfigT], assembly: AssemblyRef
) -> ConfigT:
    """Build the engine configuration for an assembly.

    The config file is YAML (JSON documents are accepted as well). Without a
    config file the configuration is built from defaults.

    Raises:
        ConfigFileError: If the file is missing, malformed or fails validation

    """
    config_path = assembly.config_filename
    if config_path is None:
        return config_cls()

    log.info("Loading engine config for %s from %s", assembly.display_name, config_path)
    try:
        content = await asyncio.to_thread(config_path.read_text, encoding="utf-8")
        data = yaml.safe_load(content) or {}
        return config_cls.model_validate(data)
    except FileNotFoundError:
        raise ConfigFileError(f"Config file not found: {config_path}") from None
    except (yaml.YAMLError, ValidationError) as e:
        raise ConfigFileError(f"Invalid config file {config_path}: {e}") from e
