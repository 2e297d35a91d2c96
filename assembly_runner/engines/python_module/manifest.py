"""Python module engine manifest."""

from assembly_runner.engines.manifest import EngineManifest
from assembly_runner.engines.python_module.config import PythonModuleConfig
from assembly_runner.engines.python_module.engine import PythonModuleEngine

python_module_manifest = EngineManifest(
    config_cls=PythonModuleConfig,
    engine_factory=PythonModuleEngine.from_config,
)
