# dcchain/settings.py
"""
Configuration for the chain builder.

Sources, highest priority first:
- explicit overrides passed to load_settings() (CLI flags),
- a YAML file (--config),
- environment variables DCCHAIN_* (nested with "__", e.g. DCCHAIN_SUBJECT__ENTITY),
- the defaults below, which reproduce the reference profile.
"""

from __future__ import annotations

import logging
import pathlib
from typing import Any, Dict, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .pki.keys import MIN_RSA_BITS
from .pki.tiers import Tier

logger = logging.getLogger(__name__)

__all__ = [
    "SubjectSettings",
    "SerialSettings",
    "LoggingSettings",
    "ChainSettings",
    "load_settings",
]


# ---------------- Utilities ----------------

def _read_yaml(path: Union[str, pathlib.Path]) -> Dict[str, Any]:
    p = pathlib.Path(path)
    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML root must be a mapping: {path}")
    return data


def _deep_merge(base: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in extra.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


# ---------------- Models ----------------

class SubjectSettings(BaseModel):
    organization: str = "example.com"
    organizational_unit: str = "csc.example.com"
    # Entity part of every tier's CN: "<entity>.ROOT", "CS <entity>.LEAF", ...
    entity: str = "dcstore"

    @field_validator("organization", "organizational_unit", "entity")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v


class SerialSettings(BaseModel):
    root: int = Field(default=Tier.ROOT.profile.default_serial, gt=0)
    intermediate: int = Field(default=Tier.INTERMEDIATE.profile.default_serial, gt=0)
    leaf: int = Field(default=Tier.LEAF.profile.default_serial, gt=0)

    @model_validator(mode="after")
    def _distinct(self) -> "SerialSettings":
        values = [self.root, self.intermediate, self.leaf]
        if len(set(values)) != len(values):
            raise ValueError(f"serial numbers must be pairwise distinct, got {values}")
        return self

    def for_tier(self, tier: Tier) -> int:
        return getattr(self, tier.value)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["text", "json"] = "text"

    @field_validator("level", mode="before")
    @classmethod
    def _upper(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class ChainSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DCCHAIN_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    subject: SubjectSettings = Field(default_factory=SubjectSettings)
    serials: SerialSettings = Field(default_factory=SerialSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    key_size: int = Field(default=MIN_RSA_BITS, ge=MIN_RSA_BITS)
    validity_days: int = Field(default=365, gt=0)
    out_dir: pathlib.Path = Field(default_factory=pathlib.Path.cwd)
    write_policy_files: bool = True

    def common_name(self, tier: Tier) -> str:
        return tier.common_name(self.subject.entity)


def load_settings(config_path: Optional[Union[str, pathlib.Path]] = None, **overrides: Any) -> ChainSettings:
    """
    Build validated settings. Overrides whose value is None are ignored so
    unset CLI flags fall through to the lower-priority sources.
    """
    data: Dict[str, Any] = {}
    if config_path is not None:
        data = _read_yaml(config_path)
        logger.debug("loaded configuration from %s", config_path)
    explicit = {k: v for k, v in overrides.items() if v is not None}
    return ChainSettings(**_deep_merge(data, explicit))
