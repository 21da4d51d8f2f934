"""
Settings models with validation.

Each component takes one flat, frozen settings value; ``MeridianSettings``
composes them by embedding.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class FetcherSettings(_FrozenModel):
    """Source fetcher settings."""
    parallel: bool = False
    max_workers: int = Field(default=8, ge=1, le=256)
    missing_target_policy: Literal["warn", "fail"] = "warn"
    primary_document_name: str = Field(default="application.yaml", min_length=1)
    overlay_dir: str = Field(default="conf.d", min_length=1)
    overlay_enabled: bool = True
    overlay_suffixes: List[str] = Field(default=[".yaml", ".yml", ".json", ".conf"])

    @field_validator('primary_document_name', 'overlay_dir')
    @classmethod
    def validate_name(cls, v):
        """Names are single path segments."""
        if "/" in v.strip("/"):
            raise ValueError(f"must be a single path segment: {v}")
        return v.strip("/")

    @field_validator('overlay_suffixes')
    @classmethod
    def validate_suffixes(cls, v):
        for suffix in v:
            if not suffix.startswith("."):
                raise ValueError(f"Overlay suffix must start with '.': {suffix}")
        return v


class CacheSettings(_FrozenModel):
    """Document cache settings. A TTL of 0 disables caching."""
    ttl_seconds: float = Field(default=3600.0, ge=0)
    max_size: int = Field(default=1000, ge=0)


class ResolverSettings(_FrozenModel):
    """Value reference resolver settings."""
    batch_size: int = Field(default=10, ge=1, le=1000)
    parallel: bool = False
    max_workers: int = Field(default=4, ge=1, le=256)
    allow_missing: bool = False


class LoggingSettings(_FrozenModel):
    """Logging settings."""
    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = Field(default="json", pattern="^(json|text)$")
    file_path: Optional[str] = None


class MeridianSettings(_FrozenModel):
    """Top-level settings composed from the component settings."""
    paths: List[str] = Field(default_factory=list)
    fetcher: FetcherSettings = Field(default_factory=FetcherSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode='after')
    def validate_paths(self):
        """Reject blank logical paths."""
        if any(not p or not p.strip() for p in self.paths):
            raise ValueError("paths must not contain blank entries")
        return self
