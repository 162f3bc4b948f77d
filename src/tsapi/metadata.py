import json
import os
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ValidationError

from tsapi.errors import MalformedManifestError, MissingManifestError
from tsapi.logger import logger
from tsapi.models import LibraryMetadata
from tsapi.settings import ManifestSettings


class PackageJson(BaseModel):
    """The subset of `package.json` needed to locate type declarations."""

    name: str
    version: str
    types: Optional[str] = None
    typings: Optional[str] = None
    # a string, or a map of subpath -> condition map (possibly nested)
    exports: Optional[Union[str, Dict[str, Any]]] = None


def extract_metadata(
    path: str, settings: Optional[ManifestSettings] = None
) -> LibraryMetadata:
    """
    Read the package manifest in directory *path* and return the library name,
    version, README documentation and type declaration entry points.
    """
    settings = settings or ManifestSettings()
    manifest_path = os.path.join(path, settings.manifest_file)
    try:
        with open(manifest_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as ex:
        raise MissingManifestError(manifest_path, str(ex)) from ex

    try:
        package_json = PackageJson.model_validate(json.loads(content))
    except json.JSONDecodeError as ex:
        raise MalformedManifestError(f"Invalid JSON in {manifest_path}: {ex}") from ex
    except ValidationError as ex:
        raise MalformedManifestError(f"Invalid manifest {manifest_path}: {ex}") from ex

    entry_points = get_entry_points(package_json, path)
    if not entry_points:
        logger.warning("Package declares no type entry points", path=manifest_path)

    return LibraryMetadata(
        name=package_json.name,
        version=package_json.version,
        documentation=read_readme(path, settings),
        entry_points=entry_points,
    )


def read_readme(path: str, settings: Optional[ManifestSettings] = None) -> str:
    settings = settings or ManifestSettings()
    for readme in settings.readme_files:
        try:
            with open(os.path.join(path, readme), "r", encoding="utf-8") as f:
                return f.read()
        except OSError:
            continue
    return ""


def get_entry_points(package_json: PackageJson, path: str) -> Dict[str, str]:
    """
    Map external entry point names to declaration file paths.

    An `exports` object wins over `types`/`typings`: each subpath whose
    condition map has a string `types` entry becomes an entry point. Without
    `exports`, `types` (or `typings`) becomes the `"."` entry point.
    """
    entry_points: Dict[str, str] = {}

    exports = package_json.exports
    if exports is not None:
        if isinstance(exports, dict):
            for subpath, config in exports.items():
                if not isinstance(config, dict):
                    continue
                types_path = config.get("types")
                if isinstance(types_path, str):
                    entry_points[subpath] = os.path.join(
                        path, types_path.removeprefix("./")
                    )
        return entry_points

    types = package_json.types or package_json.typings
    if types:
        entry_points["."] = os.path.join(path, types)
    return entry_points
