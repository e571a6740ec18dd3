"""Application configuration: settings schema and config.yaml loader"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from mdconf.core.errors import ConfigError


CONFIG_FILE = "config.yaml"


class Settings(BaseModel):
    app_name:      str = "mdconf"

    # indexing
    input_dir:          str = Field(default=".",    description="Root directory of the markdown page tree")
    file_extension:     str = Field(default="md",   description="Extension of page files")
    exclude_pattern:    Optional[str] = Field(default=None, description="Glob of relative paths to skip")
    child_layout:       str = Field(default="sub_directory", pattern="^(sub_directory|same_directory)$")
    orphan_file_action: str = Field(default="ignore", pattern="^(ignore|add_to_top_level)$")

    # titles
    title_strategy:       str = Field(default="default", pattern="^(default|first_heading|filename)$")
    title_prefix:         str = ""
    title_suffix:         str = ""
    title_child_prefixed: bool = Field(default=False, description="Prefix child titles with the parent title")
    remove_title:         bool = Field(default=False, description="Strip the heading repeating the page title")

    # rendering
    plantuml_macro:      bool = Field(default=False, description="Render plantuml fences as a diagram macro")
    plantuml_macro_name: str = "plantuml"
    suppress_html:       bool = Field(default=True, description="Drop raw HTML instead of passing it through")
    charset:             str = "utf-8"
    workers:             int = Field(default=1, ge=1, description="Parallel top-level subtree conversions")

    # output
    output_dir: str = Field(default=".mdconf/out", description="Directory for rendered wiki files and attachments")
    model_file: str = Field(default="confluence-content-model.json", description="Content model file name")

    # content store
    db_url:         str = "sqlite:///mdconf.db"
    space_key:      str = Field(default="DOCS", min_length=1)
    parent_title:   Optional[str] = Field(default=None, description="Existing page to publish under")
    orphan_removal: str = Field(default="remove", pattern="^(remove|keep)$")
    max_versions:   int = Field(default=10, ge=0, description="Max stored versions per page; 0 keeps all")

    @property
    def model_path(self) -> Path:
        return Path(self.output_dir) / self.model_file


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then MDCONF_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid {CONFIG_FILE}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Invalid {CONFIG_FILE}: expected a mapping")

    for name in Settings.model_fields:
        if val := os.getenv(f"MDCONF_{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
