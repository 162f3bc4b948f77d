import os
from typing import Optional

from tsapi.errors import MissingDependencyError


def resolve_dependency_path(name: str, dependant_path: str) -> str:
    """
    Return the directory of dependency *name* as installed for the package at
    *dependant_path*, looking in `node_modules` of the package and then of each
    enclosing package.
    """
    path = _recursive_resolve_dependency_path(name, dependant_path)
    if path is None:
        raise MissingDependencyError(name)
    return path


def _recursive_resolve_dependency_path(
    name: str, dependant_path: str
) -> Optional[str]:
    # Stop at the first directory that is not itself a package.
    if not os.path.exists(os.path.join(dependant_path, "package.json")):
        return None

    node_modules_path = os.path.join(dependant_path, "node_modules", name)
    if os.path.exists(node_modules_path):
        return node_modules_path

    parent = os.path.dirname(dependant_path)
    if not parent or parent == dependant_path:
        return None
    return _recursive_resolve_dependency_path(name, parent)
