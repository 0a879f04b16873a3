"""Centralized configuration for item-search-engine using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ObservabilityCollectorConfig(BaseModel):
    """Configuration for OTLP trace, metric and log export."""

    model_config = {"extra": "forbid"}

    enabled: Annotated[
        bool,
        Field(
            description="Enable OTLP export to an external collector",
        ),
    ] = False

    otlp_protocol: Annotated[
        Literal["http", "grpc"],
        Field(
            description="OTLP transport protocol",
        ),
    ] = "grpc"

    collector_endpoint: Annotated[
        str,
        Field(
            description="OTLP collector endpoint (HTTP uses /v1/traces)",
            examples=["http://localhost:4317", "http://localhost:4318/v1/traces"],
        ),
    ] = "http://localhost:4317"

    headers: Annotated[
        dict[str, str],
        Field(
            description="Optional headers to include with OTLP requests",
        ),
    ] = Field(default_factory=dict)

    timeout_seconds: Annotated[
        int,
        Field(
            ge=1,
            le=60,
            description="OTLP exporter timeout in seconds",
        ),
    ] = 10

    grpc_insecure: Annotated[
        bool,
        Field(
            description="Allow insecure gRPC (plaintext) connections",
        ),
    ] = True

    resource_attributes: Annotated[
        dict[str, str],
        Field(
            description="Additional OpenTelemetry resource attributes",
        ),
    ] = Field(default_factory=dict)


class EngineSettings(BaseSettings):
    """Strictly typed engine configuration loaded from ``ITEM_SEARCH_*`` variables.

    Index shape (prefix length, n-gram size), build batching and ranking caps are
    all validated at startup so a bad environment fails fast instead of producing
    a half-usable index.
    """

    model_config = SettingsConfigDict(
        env_prefix="ITEM_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Index shape
    prefix_max: int = Field(default=6, ge=1, description="Longest token prefix stored in the prefix index")
    ngram_size: int = Field(default=3, ge=1, description="Length of substrings stored in the n-gram index")
    trailing_prefix_min: int = Field(
        default=3,
        ge=1,
        description="Shortest prefix consulted for the trailing query token",
    )

    # Build pipeline
    batch_size: int = Field(default=5000, ge=1, description="Items per staged build batch")
    build_workers: int = Field(default=1, ge=1, description="Threads used to stage batches")
    progress_every: int = Field(default=50000, ge=1, description="Items between build progress log lines")
    staging_dir: Path | None = Field(
        default=None,
        description="Base directory for staging artifacts (defaults to the system temp dir)",
    )

    # Query
    result_cap: int = Field(default=1000, ge=1, description="Matched ids scored and returned per query")

    # Dataset and paging
    total_items: int = Field(default=1_000_000, ge=0, description="Dataset size served by the service")
    page_size: int = Field(default=20, ge=1, description="Default page size")
    max_page_size: int = Field(default=100, ge=1, description="Largest page a caller may request")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")

    observability: ObservabilityCollectorConfig = Field(default_factory=ObservabilityCollectorConfig)

    @model_validator(mode="after")
    def _check_prefix_bounds(self) -> "EngineSettings":
        if self.trailing_prefix_min > self.prefix_max:
            raise ValueError(
                f"trailing_prefix_min ({self.trailing_prefix_min}) cannot exceed prefix_max ({self.prefix_max})"
            )
        if self.page_size > self.max_page_size:
            raise ValueError(f"page_size ({self.page_size}) cannot exceed max_page_size ({self.max_page_size})")
        return self

    def clamp_page_size(self, limit: int | None) -> int:
        """Return a usable page size for ``limit``."""
        if not limit or limit < 1:
            return self.page_size
        return min(limit, self.max_page_size)


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    """Return the process-wide settings instance."""
    return EngineSettings()
