import os
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Dict, Iterator, List, Mapping, Optional

from tsapi.errors import MalformedModuleError, ModuleIoError
from tsapi.lang.typescript import parse_typescript_file
from tsapi.logger import logger
from tsapi.models import Module
from tsapi.settings import ResolutionSettings


class FileSystem(ABC):
    """
    Filesystem operations needed by the module graph builder. Kept minimal so
    resolution can be exercised against an in-memory implementation.
    """

    @abstractmethod
    def read_text(self, path: str) -> str: ...

    @abstractmethod
    def is_file(self, path: str) -> bool: ...

    @abstractmethod
    def is_dir(self, path: str) -> bool: ...

    @abstractmethod
    def canonicalize(self, path: str) -> Optional[str]:
        """Return the canonical absolute form of *path*, or None if it does not exist."""
        ...


class LocalFileSystem(FileSystem):
    def read_text(self, path: str) -> str:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def is_file(self, path: str) -> bool:
        return os.path.isfile(path)

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(path)

    def canonicalize(self, path: str) -> Optional[str]:
        if not os.path.exists(path):
            return None
        return os.path.realpath(path)


def is_relative_specifier(specifier: str) -> bool:
    return specifier.startswith("./") or specifier.startswith("../")


def _normalise_file_path(path: str, fs: FileSystem) -> Optional[str]:
    canonical = fs.canonicalize(path)
    if canonical is not None and fs.is_file(canonical):
        return canonical
    return None


def _candidate_paths(
    joined: str, fs: FileSystem, settings: ResolutionSettings
) -> Iterator[str]:
    yield joined
    for suffix in settings.declaration_suffixes:
        yield joined + suffix
    # `./foo.js` written for ESM output maps to `./foo.d.ts`
    for ext in settings.replaced_extensions:
        if joined.endswith(ext):
            stem = joined[: -len(ext)]
            for suffix in settings.declaration_suffixes:
                yield stem + suffix
    # Directory fallbacks only apply when the joined path is a directory.
    if fs.is_dir(joined):
        for index_file in settings.index_files:
            yield os.path.join(joined, index_file)


def resolve_relative_import(
    module_path: str,
    specifier: str,
    fs: Optional[FileSystem] = None,
    settings: Optional[ResolutionSettings] = None,
) -> Optional[str]:
    """
    Resolve *specifier*, referenced from the file at *module_path*, to a file.

    Only `./` and `../` specifiers are resolved; bare package specifiers yield
    None. Candidates are tried in order (as given, each declaration suffix,
    then the directory index files) and the first one that canonicalises to an
    existing regular file wins. When nothing matches, the joined path is
    returned as-is so the failure surfaces when the file is read.
    """
    if not is_relative_specifier(specifier):
        return None
    fs = fs or LocalFileSystem()
    settings = settings or ResolutionSettings()

    joined = os.path.join(os.path.dirname(module_path), specifier)
    for candidate in _candidate_paths(joined, fs, settings):
        resolved = _normalise_file_path(candidate, fs)
        if resolved is not None:
            return resolved

    logger.warning(
        "Unresolved relative module",
        module=module_path,
        specifier=specifier,
        path=joined,
    )
    return joined


class ModuleSet(Mapping[str, Module]):
    """
    Modules reachable from a set of entry points, keyed by canonical file path.
    """

    def __init__(self, modules: Optional[Dict[str, Module]] = None) -> None:
        self._modules: Dict[str, Module] = dict(modules or {})

    def __getitem__(self, path: str) -> Module:
        return self._modules[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._modules)

    def __len__(self) -> int:
        return len(self._modules)

    def __repr__(self) -> str:
        return f"ModuleSet({list(self._modules)!r})"

    @classmethod
    def from_entrypoints(
        cls,
        entry_points: Mapping[str, str],
        fs: Optional[FileSystem] = None,
        settings: Optional[ResolutionSettings] = None,
        parse: Callable[[str, str], Module] = parse_typescript_file,
    ) -> "ModuleSet":
        """
        Parse every module reachable from *entry_points* (name -> file path)
        through relative imports and re-exports.

        Each distinct file is read and parsed exactly once, in FIFO order.
        Raises ModuleIoError if a file cannot be read and MalformedModuleError
        if one cannot be parsed; no partial set is returned.
        """
        fs = fs or LocalFileSystem()
        settings = settings or ResolutionSettings()

        modules: Dict[str, Module] = {}
        visited: set[str] = set()
        queue: deque[str] = deque()

        for path in entry_points.values():
            queue.append(_normalise_file_path(path, fs) or path)

        while queue:
            current_path = queue.popleft()
            if current_path in visited:
                continue
            visited.add(current_path)

            try:
                content = fs.read_text(current_path)
            except (OSError, UnicodeDecodeError) as ex:
                raise ModuleIoError(current_path, str(ex)) from ex

            try:
                module = parse(content, current_path)
            except MalformedModuleError as ex:
                raise MalformedModuleError(f"{current_path}: {ex}") from ex
            modules[current_path] = module

            for dependency in get_imported_module_paths(
                module, current_path, fs=fs, settings=settings
            ):
                queue.append(dependency)

        logger.debug(
            "Built module set",
            entry_points=len(entry_points),
            modules=len(modules),
        )
        return cls(modules)


def get_imported_module_paths(
    module: Module,
    path: str,
    fs: Optional[FileSystem] = None,
    settings: Optional[ResolutionSettings] = None,
) -> List[str]:
    dependencies: List[str] = []
    for specifier in module.referenced_specifiers():
        resolved = resolve_relative_import(path, specifier, fs=fs, settings=settings)
        if resolved is not None:
            dependencies.append(resolved)
    return dependencies
