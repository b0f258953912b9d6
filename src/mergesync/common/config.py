import os
from typing import Any, Literal

import yaml

# Jinja2 sandboxed environment is used in ConfigLoader
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from mergesync.common.errors import ConfigurationError
from mergesync.common.utils import is_valid_identifier
from mergesync.partition import PartitionKey, PartitionSpec


class PartitionKeyConfig(BaseModel):
    """One partition column of the target table."""

    key: str
    type: str = "string"
    formula: str | None = Field(
        default=None,
        description="Source expression deriving the key. Defaults to the key column itself.",
    )

    @model_validator(mode="before")
    @classmethod
    def parse_pipe_syntax(cls, data: Any) -> Any:
        # Accept the compact "key|type|formula" form
        if isinstance(data, str):
            parts = [p.strip() for p in data.split("|")]
            if len(parts) > 3:
                raise ValueError(f"Invalid partition key definition: {data!r}")
            parsed: dict[str, Any] = {"key": parts[0]}
            if len(parts) > 1 and parts[1]:
                parsed["type"] = parts[1]
            if len(parts) > 2 and parts[2]:
                parsed["formula"] = parts[2]
            return parsed
        return data

    @field_validator("key")
    @classmethod
    def validate_key(cls, value: str) -> str:
        if not is_valid_identifier(value):
            raise ValueError(f"Invalid partition key name: {value!r}")
        return value

    def to_partition_key(self) -> PartitionKey:
        return PartitionKey(key=self.key, type=self.type, formula=self.formula or "")


class TableJobConfig(BaseModel):
    """
    Configuration for one merge or sync of a source table into a target table.
    """

    source_table: str
    target_table: str
    mode: Literal["merge", "sync"] = "merge"
    partition_keys: list[PartitionKeyConfig] = Field(default_factory=list)
    dedupe: bool = False
    feed_partition_value: str | None = Field(
        default=None,
        description="processing_dttm of the feed to apply. Usually supplied at run time.",
    )

    @model_validator(mode="after")
    def validate_mode_rules(self) -> "TableJobConfig":
        if self.mode == "sync":
            if self.dedupe:
                raise ValueError(
                    "dedupe applies to merge only; sync always replaces the whole table"
                )
            if self.target_table.count(".") != 1:
                raise ValueError(
                    f"Sync requires a qualified target table schema.table, got {self.target_table}"
                )
        return self

    @property
    def name(self) -> str:
        return f"{self.mode}:{self.source_table}->{self.target_table}"

    def partition_spec(self) -> PartitionSpec:
        return PartitionSpec.of(k.to_partition_key() for k in self.partition_keys)


class ConfigLoader:
    """
    Loads and validates YAML job configuration files with Jinja2 templating support.
    Uses Pydantic for schema validation and parsing.
    """

    def __init__(self, env_vars: dict[str, str] | None = None):
        self.env_vars = os.environ.copy() if env_vars is None else env_vars

    def load_config(self, file_path: str) -> TableJobConfig:
        """
        Reads a YAML file, renders it with Jinja2 using env_vars,
        and parses it into a TableJobConfig object using Pydantic.
        """
        with open(file_path) as f:
            raw_content = f.read()
        return self.load_string(raw_content, source=file_path)

    def load_string(self, raw_content: str, source: str = "<string>") -> TableJobConfig:
        from jinja2 import StrictUndefined
        from jinja2.exceptions import TemplateError
        from jinja2.sandbox import SandboxedEnvironment

        env = SandboxedEnvironment(undefined=StrictUndefined)
        try:
            rendered_content = env.from_string(raw_content).render(self.env_vars)
            config_dict = yaml.safe_load(rendered_content)
        except (TemplateError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Could not read configuration {source}: {e}", {"source": source}
            ) from e

        if not isinstance(config_dict, dict):
            raise ConfigurationError(
                f"Configuration {source} must be a mapping", {"source": source}
            )

        # Parse and Validate with Pydantic
        try:
            return TableJobConfig(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(
                f"Configuration validation error in {source}: {e}", {"source": source}
            ) from e
