from tsapi.errors import (
    ExtractionError,
    MalformedModuleError,
    ModuleIoError,
)
from tsapi.extractor import TypeScriptExtractor
from tsapi.lang.typescript import parse_typescript_file
from tsapi.models import (
    Module,
    ModuleExport,
    ModuleImport,
    Namespace,
    Symbol,
)
from tsapi.module_set import ModuleSet, resolve_relative_import

__all__ = [
    "ExtractionError",
    "MalformedModuleError",
    "ModuleIoError",
    "TypeScriptExtractor",
    "parse_typescript_file",
    "Module",
    "ModuleExport",
    "ModuleImport",
    "Namespace",
    "Symbol",
    "ModuleSet",
    "resolve_relative_import",
]
