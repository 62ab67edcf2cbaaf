"""Pydantic configuration models for the board CLI."""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class PathsConfig(BaseModel):
    """File paths configuration."""

    db: Path = Path("~/.board/board.db")

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        self.db = self.db.expanduser()
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"
    json_mode: bool = Field(default=False, alias="json")

    model_config = {"populate_by_name": True}

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class ReadinessConfig(BaseModel):
    """Dependency readiness rules."""

    # A dependency id with no matching task counts as unmet
    missing_dependency_blocks: bool = True


class KnowledgeConfig(BaseModel):
    """Knowledge annotation confidence defaults."""

    default_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    high_confidence_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    default_weight: float = Field(default=1.0, gt=0.0, allow_inf_nan=False)


class BoardConfig(BaseModel):
    """Main configuration model."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    readiness: ReadinessConfig = Field(default_factory=ReadinessConfig)
    knowledge: KnowledgeConfig = Field(default_factory=KnowledgeConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "BoardConfig":
        """Create config from dict, accepting string paths."""
        if isinstance(data.get("paths"), dict) and isinstance(data["paths"].get("db"), str):
            data["paths"]["db"] = Path(data["paths"]["db"])
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        """Convert to a YAML-friendly dict."""
        return self.model_dump(mode="json", by_alias=True)
