from typing import List, Optional, Sequence

from tsapi.logger import logger
from tsapi.models import (
    LibraryMetadata,
    LibraryNamespace,
    Namespace,
    PublicSymbol,
    Symbol,
    TypeScriptSymbol,
)
from tsapi.module_set import FileSystem, ModuleSet
from tsapi.settings import ResolutionSettings


def extract_public_api(
    metadata: LibraryMetadata,
    fs: Optional[FileSystem] = None,
    settings: Optional[ResolutionSettings] = None,
) -> List[LibraryNamespace]:
    """
    Build the module set for *metadata*'s entry points and flatten it into
    namespaces: one for the library itself holding every exported symbol, and
    one per exported TypeScript namespace, named with a dotted path.
    """
    modules = ModuleSet.from_entrypoints(metadata.entry_points, fs=fs, settings=settings)
    return flatten_module_set(metadata, modules)


def flatten_module_set(
    metadata: LibraryMetadata, modules: ModuleSet
) -> List[LibraryNamespace]:
    root = LibraryNamespace(
        name=metadata.name,
        doc_comment=metadata.documentation or None,
    )
    namespaces = [root]
    for path, module in modules.items():
        _collect(module.symbols, root, metadata.name, namespaces)
        logger.debug("Collected public symbols", path=path)
    return namespaces


def _collect(
    symbols: Sequence[TypeScriptSymbol],
    target: LibraryNamespace,
    prefix: str,
    namespaces: List[LibraryNamespace],
) -> None:
    seen = {(s.name, s.source_code) for s in target.symbols}
    for sym in symbols:
        if isinstance(sym, Symbol) and sym.is_exported:
            key = (sym.name, sym.source_code)
            if key in seen:
                continue
            seen.add(key)
            target.symbols.append(PublicSymbol(name=sym.name, source_code=sym.source_code))
        elif isinstance(sym, Namespace) and sym.is_exported:
            name = f"{prefix}.{sym.name}"
            child = next((ns for ns in namespaces if ns.name == name), None)
            if child is None:
                child = LibraryNamespace(name=name, doc_comment=sym.jsdoc)
                namespaces.append(child)
            _collect(sym.content, child, name, namespaces)
