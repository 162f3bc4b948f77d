from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ResolutionSettings(BaseModel):
    """Settings for resolving relative module specifiers to files."""

    declaration_suffixes: tuple[str, ...] = Field(
        default=(".d.ts", ".ts"),
        description=(
            "Suffixes appended to a relative specifier, in order, when the "
            "specifier does not name an existing file."
        ),
    )
    replaced_extensions: tuple[str, ...] = Field(
        default=(".js",),
        description=(
            "Runtime extensions that are swapped for each declaration suffix "
            "after the plain suffix candidates have been tried."
        ),
    )
    index_files: tuple[str, ...] = Field(
        default=("index.d.ts", "index.ts"),
        description=(
            "File names tried, in order, when a relative specifier names a directory."
        ),
    )


class ManifestSettings(BaseModel):
    """Settings for reading package metadata."""

    manifest_file: str = Field(
        default="package.json", description="Name of the package manifest file."
    )
    readme_files: tuple[str, ...] = Field(
        default=("README.md", "README.txt", "README"),
        description="README file names tried, in order, for library documentation.",
    )


class ExtractorSettings(BaseSettings):
    """Top-level settings for API extraction."""

    model_config = SettingsConfigDict(
        env_prefix="TSAPI_",
        env_nested_delimiter="__",
    )

    debug: bool = Field(default=False, description="Enable debug logging.")
    resolution: ResolutionSettings = Field(
        default_factory=ResolutionSettings,
        description="Settings for relative module resolution.",
    )
    manifest: ManifestSettings = Field(
        default_factory=ManifestSettings,
        description="Settings for package manifest and README lookup.",
    )


def load_settings(env_file: Optional[str] = None, **kwargs) -> ExtractorSettings:
    """
    Build settings from the environment (``TSAPI_*`` variables), an optional
    dotenv file and explicit keyword overrides.
    """
    if env_file is None:
        return ExtractorSettings(**kwargs)

    class Settings(ExtractorSettings):
        model_config = SettingsConfigDict(
            env_prefix="TSAPI_",
            env_nested_delimiter="__",
            env_file=env_file,
        )

    return Settings(**kwargs)
