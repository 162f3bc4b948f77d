class ExtractionError(Exception):
    """Base class for failures while extracting a module graph."""


class ModuleIoError(ExtractionError):
    """A module file expected to exist could not be read."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to read file at '{path}': {reason}")


class MalformedModuleError(ExtractionError):
    """
    Source text could not be turned into a trustworthy syntax tree, or a node
    the extractor relies on does not have the expected shape.
    """


class LibraryMetadataError(Exception):
    """Base class for package manifest problems."""


class MissingManifestError(LibraryMetadataError):
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Missing package manifest at '{path}': {reason}")


class MalformedManifestError(LibraryMetadataError):
    pass


class MissingDependencyError(Exception):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Dependency '{name}' could not be found in node_modules")
