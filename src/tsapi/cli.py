import json
import logging
import sys
from pathlib import Path
from typing import Tuple

import click

from tsapi.errors import ExtractionError, LibraryMetadataError
from tsapi.extractor import TypeScriptExtractor
from tsapi.logger import logger
from tsapi.models import Module, ModuleExport, ModuleImport, Namespace, Symbol
from tsapi.module_set import ModuleSet
from tsapi.settings import load_settings


def _setup_logging(debug: bool) -> None:
    # Ensure stdlib logger emits records so structlog output is visible
    level = logging.DEBUG if debug else logging.WARNING
    root = logging.getLogger()
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        # structlog renders the final message; keep stdlib formatter simple.
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
    else:
        for handler in root.handlers:
            handler.setLevel(level)


def _module_summary(module: Module) -> str:
    counts = {"imports": 0, "symbols": 0, "namespaces": 0, "exports": 0}
    for sym in module.symbols:
        if isinstance(sym, ModuleImport):
            counts["imports"] += 1
        elif isinstance(sym, Symbol):
            counts["symbols"] += 1
        elif isinstance(sym, Namespace):
            counts["namespaces"] += 1
        elif isinstance(sym, ModuleExport):
            counts["exports"] += 1
    parts = ", ".join(f"{k}={v}" for k, v in counts.items())
    return f"{module.path}: {parts}"


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--debug/--no-debug",
    default=False,
    help="Enable debug logging (also enabled by TSAPI_DEBUG=1).",
)
@click.pass_context
def main(ctx: click.Context, debug: bool) -> None:
    """Extract the declared public API of TypeScript libraries."""
    settings = load_settings(debug=True) if debug else load_settings()
    _setup_logging(settings.debug)
    ctx.obj = TypeScriptExtractor(settings=settings)


@main.command("modules")
@click.argument(
    "entry_points",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
)
@click.option(
    "--json/--summary",
    "as_json",
    default=True,
    help="Print the module set as JSON or as one summary line per module.",
)
@click.pass_obj
def modules_cmd(
    extractor: TypeScriptExtractor, entry_points: Tuple[Path, ...], as_json: bool
) -> None:
    """
    Parse ENTRY_POINTS and every module they reach through relative imports.
    """
    entries = {str(p): str(p.resolve()) for p in entry_points}
    try:
        modules = ModuleSet.from_entrypoints(
            entries, fs=extractor.fs, settings=extractor.settings.resolution
        )
    except ExtractionError as ex:
        logger.error("Module extraction failed", error=str(ex))
        raise SystemExit(1)

    if as_json:
        payload = {
            path: module.model_dump(mode="json") for path, module in modules.items()
        }
        click.echo(json.dumps(payload, indent=2))
    else:
        for module in modules.values():
            click.echo(_module_summary(module))


@main.command("api")
@click.argument(
    "package_dir",
    type=click.Path(exists=True, file_okay=False, readable=True, path_type=Path),
)
@click.option(
    "--json/--summary",
    "as_json",
    default=True,
    help="Print the public API as JSON or as a list of symbol names.",
)
@click.pass_obj
def api_cmd(extractor: TypeScriptExtractor, package_dir: Path, as_json: bool) -> None:
    """
    Read PACKAGE_DIR/package.json and print the library's public API.
    """
    try:
        metadata = extractor.get_library_metadata(str(package_dir.resolve()))
        namespaces = extractor.extract_public_api(metadata)
    except (LibraryMetadataError, ExtractionError) as ex:
        logger.error("API extraction failed", path=str(package_dir), error=str(ex))
        raise SystemExit(1)

    if as_json:
        click.echo(
            json.dumps([ns.model_dump(mode="json") for ns in namespaces], indent=2)
        )
        return

    header = metadata.name if not metadata.version else f"{metadata.name}@{metadata.version}"
    click.echo(header)
    for ns in namespaces:
        click.echo(f"- {ns.name}")
        for sym in ns.symbols:
            click.echo(f"    {sym.name}")


if __name__ == "__main__":
    main()
