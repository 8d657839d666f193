"""
Configuration for the pgxrisk analysis core.
Centralizes tunable parameters for VCF ingestion and deterministic scoring.
"""

from pydantic import BaseModel, Field, model_validator


class VcfIngestConfig(BaseModel):
    """Parser and validator settings."""

    restrict_to_target_chromosomes: bool = Field(
        default=True,
        description=(
            "Drop data lines whose chromosome is not referenced by the requested genes. "
            "A performance filter only; phenotype inference matches by rsID regardless."
        )
    )

    max_info_tag_warnings: int = Field(
        default=5,
        ge=0,
        description="Maximum number of 'missing pharmacogenomic INFO tags' warnings per file"
    )


class ScoringConfig(BaseModel):
    """Bounds for the deterministic confidence and impact scores."""

    confidence_floor: float = Field(
        default=85.0,
        ge=0.0,
        le=100.0,
        description="Lowest confidence score reported for a supported drug"
    )

    confidence_ceiling: float = Field(
        default=100.0,
        ge=0.0,
        le=100.0,
        description="Highest confidence score reported for a supported drug"
    )

    evidence_baseline: float = Field(
        default=85.0,
        ge=0.0,
        le=100.0,
        description="Variant evidence score at which impact equals the phenotype base value"
    )

    @model_validator(mode="after")
    def _check_bounds(self) -> "ScoringConfig":
        if self.confidence_floor > self.confidence_ceiling:
            raise ValueError("confidence_floor must not exceed confidence_ceiling")
        return self


class PGxConfig(BaseModel):
    """Main configuration for the pgxrisk core."""

    vcf: VcfIngestConfig = Field(default_factory=VcfIngestConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)

    strict_validation: bool = Field(
        default=False,
        description="Abort analysis on error-severity issues too (critical issues always abort)"
    )

    parse_cache_size: int = Field(
        default=100,
        ge=1,
        description="Maximum entries held by the default parse cache"
    )

    explanation_cache_size: int = Field(
        default=256,
        ge=1,
        description="Maximum entries held by the default explanation cache"
    )


# Global configuration instance
_config: PGxConfig = PGxConfig()


def get_config() -> PGxConfig:
    """Get the global configuration instance."""
    return _config


def update_config(**kwargs) -> PGxConfig:
    """
    Update configuration parameters.

    Nested fields may be addressed with dotted keys, e.g.
    ``update_config(**{"scoring.confidence_floor": 80.0})``.
    """
    global _config
    current_dict = _config.model_dump()

    for key, value in kwargs.items():
        if '.' in key:
            parts = key.split('.')
            current = current_dict
            for part in parts[:-1]:
                current = current[part]
            current[parts[-1]] = value
        else:
            current_dict[key] = value

    _config = PGxConfig(**current_dict)
    return _config


def reset_config() -> PGxConfig:
    """Restore defaults."""
    global _config
    _config = PGxConfig()
    return _config


def load_config_from_file(filepath: str) -> PGxConfig:
    """Load configuration from a JSON file."""
    import json
    global _config

    with open(filepath, 'r', encoding='utf-8') as f:
        config_dict = json.load(f)

    _config = PGxConfig(**config_dict)
    return _config


def save_config_to_file(filepath: str) -> None:
    """Save current configuration to a JSON file."""
    import json

    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(_config.model_dump(), f, indent=2)
