from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class ArtifactCategoryConfig(BaseModel):
    """One scored artifact category."""

    name: str
    label: str
    required_per_state: bool = True


DEFAULT_CATEGORIES = [
    ArtifactCategoryConfig(name="forms", label="Forms"),
    ArtifactCategoryConfig(name="rules", label="Underwriting Rules"),
    ArtifactCategoryConfig(
        name="ratePrograms", label="Rate Programs", required_per_state=False
    ),
    ArtifactCategoryConfig(name="tables", label="Rating Tables", required_per_state=False),
]

DEFAULT_ENTITY_TYPES = [
    "product",
    "coverage",
    "form",
    "rule",
    "rateProgram",
    "table",
    "dataDictionary",
]


class ArtifactsConfig(BaseModel):
    """Artifact categories scored for every product version."""

    categories: list[ArtifactCategoryConfig] = Field(
        default_factory=lambda: [c.model_copy() for c in DEFAULT_CATEGORIES]
    )

    def get(self, name: str) -> Optional[ArtifactCategoryConfig]:
        return next((c for c in self.categories if c.name == name), None)


class VersioningConfig(BaseModel):
    """Version store settings."""

    entity_types: list[str] = Field(default_factory=lambda: list(DEFAULT_ENTITY_TYPES))
    clone_max_retries: int = 5
    retry_base_delay: float = 0.05
    retry_jitter: float = 0.05


class ScoringConfig(BaseModel):
    """Weights and thresholds of the overall readiness score."""

    state_weight: float = 0.4
    artifact_weight: float = 0.4
    approval_weight: float = 0.2
    approval_penalty: float = 0.1
    low_score_threshold: int = 50
    on_track_threshold: int = 80
    at_risk_threshold: int = 50


class Product360Config(BaseModel):
    """Top-level configuration model."""

    database_url: Optional[str] = None
    versioning: VersioningConfig = Field(default_factory=VersioningConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    artifacts: ArtifactsConfig = Field(default_factory=ArtifactsConfig)


def load_config(path: Optional[str] = None) -> Product360Config:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to PRODUCT360_CONFIG env
            variable or 'product360.yaml' in the current directory.
    """

    config_path = path or os.getenv("PRODUCT360_CONFIG", "product360.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = Product360Config(**data)
    else:
        config = Product360Config()

    env_db_url = os.getenv("PRODUCT360_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    return config
