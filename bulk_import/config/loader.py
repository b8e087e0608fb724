from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader for the bulk label import tool.

Responsibilities:
- Load YAML config (default config/bulk_import.yml)
- Validate against config_schema.json (unknown keys are rejected)
- Apply defaults (timeout 60s, min balance 5, delay 0.5s, logs ./logs)
- Environment overrides for the API endpoint / token (see apply_env_overrides)
"""

__all__ = [
    "ConfigError",
    "ApiConfig",
    "BatchConfig",
    "DefaultsConfig",
    "ImportConfig",
    "DEFAULT_CONFIG_PATH",
    "load_config",
    "apply_env_overrides",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/bulk_import.yml")

ENV_API_URL = "BULK_IMPORT_API_URL"
ENV_API_TOKEN = "BULK_IMPORT_API_TOKEN"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class ApiConfig:
    base_url: str
    token: str | None = None
    timeout_seconds: float = 60.0


@dataclass(frozen=True)
class BatchConfig:
    min_balance: float = 5.0
    request_delay_seconds: float = 0.5


@dataclass(frozen=True)
class DefaultsConfig:
    from_address_id: str | int | None = None
    label_type_id: str | int | None = None


@dataclass(frozen=True)
class ImportConfig:
    api: ApiConfig
    batch: BatchConfig
    defaults: DefaultsConfig
    logs_dir: str = "./logs"


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing / broken, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    api_raw = data["api"]
    batch_raw = data.get("batch") or {}
    defaults_raw = data.get("defaults") or {}
    return ImportConfig(
        api=ApiConfig(
            base_url=api_raw["base_url"],
            token=api_raw.get("token"),
            timeout_seconds=float(api_raw.get("timeout_seconds", 60.0)),
        ),
        batch=BatchConfig(
            min_balance=float(batch_raw.get("min_balance", 5.0)),
            request_delay_seconds=float(batch_raw.get("request_delay_seconds", 0.5)),
        ),
        defaults=DefaultsConfig(
            from_address_id=defaults_raw.get("from_address_id"),
            label_type_id=defaults_raw.get("label_type_id"),
        ),
        logs_dir=data.get("logs_dir", "./logs"),
    )


def apply_env_overrides(cfg: ImportConfig, environ: Mapping[str, str] | None = None) -> ImportConfig:
    """Return ``cfg`` with API url / token taken from the environment when set.

    優先順位: 環境変数 (.env 読込後) > YAML
    """
    env = os.environ if environ is None else environ
    api = cfg.api
    if env.get(ENV_API_URL):
        api = replace(api, base_url=env[ENV_API_URL])
    if env.get(ENV_API_TOKEN):
        api = replace(api, token=env[ENV_API_TOKEN])
    return replace(cfg, api=api)
