"""Python module engine: runs tests defined in a Python source file."""

from assembly_runner.engines.python_module.config import PythonModuleConfig
from assembly_runner.engines.python_module.engine import PythonModuleEngine
from assembly_runner.engines.python_module.manifest import python_module_manifest

__all__ = ["PythonModuleConfig", "PythonModuleEngine", "python_module_manifest"]
