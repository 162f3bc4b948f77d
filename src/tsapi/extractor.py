from typing import List, Optional

import tree_sitter as ts

from tsapi.api import extract_public_api
from tsapi.dependencies import resolve_dependency_path
from tsapi.metadata import extract_metadata
from tsapi.models import LibraryMetadata, LibraryNamespace
from tsapi.module_set import FileSystem, ModuleSet
from tsapi.parsers import TS_LANGUAGE
from tsapi.settings import ExtractorSettings


class TypeScriptExtractor:
    """
    Entry point tying together manifest reading, dependency lookup and
    public API extraction for TypeScript libraries.
    """

    def __init__(
        self,
        settings: Optional[ExtractorSettings] = None,
        fs: Optional[FileSystem] = None,
    ) -> None:
        self.settings = settings or ExtractorSettings()
        self.fs = fs

    def get_parser_language(self) -> ts.Language:
        return TS_LANGUAGE

    def get_library_metadata(self, path: str) -> LibraryMetadata:
        return extract_metadata(path, self.settings.manifest)

    def resolve_dependency_path(self, name: str, dependant_path: str) -> str:
        return resolve_dependency_path(name, dependant_path)

    def build_module_set(self, metadata: LibraryMetadata) -> ModuleSet:
        return ModuleSet.from_entrypoints(
            metadata.entry_points, fs=self.fs, settings=self.settings.resolution
        )

    def extract_public_api(self, metadata: LibraryMetadata) -> List[LibraryNamespace]:
        return extract_public_api(
            metadata, fs=self.fs, settings=self.settings.resolution
        )
