from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SymbolKind(str, Enum):
    SYMBOL = "symbol"
    NAMESPACE = "namespace"
    MODULE_IMPORT = "module_import"
    MODULE_EXPORT = "module_export"


class TargetKind(str, Enum):
    DEFAULT = "default"
    NAMESPACE = "namespace"
    NAMED = "named"
    BARREL = "barrel"


# ---------------------------------------------------------------------------
# Import / export targets
# ---------------------------------------------------------------------------


class DefaultImport(BaseModel):
    """`import React from 'react'`"""

    kind: Literal[TargetKind.DEFAULT] = TargetKind.DEFAULT
    name: str


class NamespaceImport(BaseModel):
    """`import * as React from 'react'`"""

    kind: Literal[TargetKind.NAMESPACE] = TargetKind.NAMESPACE
    name: str


class NamedImport(BaseModel):
    """`import { useState as foo } from 'react'`"""

    kind: Literal[TargetKind.NAMED] = TargetKind.NAMED
    names: List[str] = Field(default_factory=list)
    # local name -> alias, only for renamed entries
    aliases: Dict[str, str] = Field(default_factory=dict)


ImportTarget = Annotated[
    Union[DefaultImport, NamespaceImport, NamedImport],
    Field(discriminator="kind"),
]


class NamespaceExport(BaseModel):
    """`export * as React from 'react'`"""

    kind: Literal[TargetKind.NAMESPACE] = TargetKind.NAMESPACE
    name: str


class NamedExport(BaseModel):
    """`export { useState as foo } from 'react'`, `export { foo }` or `export = foo`"""

    kind: Literal[TargetKind.NAMED] = TargetKind.NAMED
    names: List[str] = Field(default_factory=list)
    aliases: Dict[str, str] = Field(default_factory=dict)


class BarrelExport(BaseModel):
    """`export * from './module'`"""

    kind: Literal[TargetKind.BARREL] = TargetKind.BARREL


ExportTarget = Annotated[
    Union[NamespaceExport, NamedExport, BarrelExport],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Symbols
# ---------------------------------------------------------------------------


class Symbol(BaseModel):
    """
    A class, interface, function, type alias, enum or variable declaration.
    ``source_code`` is an exact slice of the file it was declared in.
    """

    kind: Literal[SymbolKind.SYMBOL] = SymbolKind.SYMBOL
    name: str
    source_code: str
    is_exported: bool = False


class Namespace(BaseModel):
    kind: Literal[SymbolKind.NAMESPACE] = SymbolKind.NAMESPACE
    name: str
    jsdoc: Optional[str] = None
    content: List["TypeScriptSymbol"] = Field(default_factory=list)
    is_exported: bool = False


class ModuleImport(BaseModel):
    """
    One binding form of an import statement. A statement such as
    `import Foo, { Bar } from './foo'` is represented by two entries.
    """

    kind: Literal[SymbolKind.MODULE_IMPORT] = SymbolKind.MODULE_IMPORT
    source_module: str
    target: ImportTarget


class ModuleExport(BaseModel):
    kind: Literal[SymbolKind.MODULE_EXPORT] = SymbolKind.MODULE_EXPORT
    # None when the export only references local names
    source_module: Optional[str] = None
    target: ExportTarget


TypeScriptSymbol = Annotated[
    Union[Symbol, Namespace, ModuleImport, ModuleExport],
    Field(discriminator="kind"),
]

Namespace.model_rebuild()


# ---------------------------------------------------------------------------
# Containers
# ---------------------------------------------------------------------------


class Module(BaseModel):
    """A parsed TypeScript file."""

    model_config = ConfigDict(frozen=True)

    path: str
    jsdoc: Optional[str] = None
    symbols: List[TypeScriptSymbol] = Field(default_factory=list)
    default_export_name: Optional[str] = None

    def referenced_specifiers(self) -> List[str]:
        """
        Return the module specifiers referenced by imports and by re-exports
        with a source, in symbol order.
        """
        out: List[str] = []
        for sym in self.symbols:
            if isinstance(sym, ModuleImport):
                out.append(sym.source_module)
            elif isinstance(sym, ModuleExport) and sym.source_module is not None:
                out.append(sym.source_module)
        return out


class LibraryMetadata(BaseModel):
    name: str
    version: Optional[str] = None
    documentation: str = ""
    # external entry point name (eg. "." or "./utils") -> absolute file path
    entry_points: Dict[str, str] = Field(default_factory=dict)


class PublicSymbol(BaseModel):
    name: str
    source_code: str


class LibraryNamespace(BaseModel):
    name: str
    doc_comment: Optional[str] = None
    symbols: List[PublicSymbol] = Field(default_factory=list)
