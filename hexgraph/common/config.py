"""
Configuration management for the hexgraph routing library.

This module provides centralized configuration loading and validation using Pydantic.
Environment variables are loaded and validated at import time. The module-level
``config`` instance is only consulted by logging setup, the command line scripts and
the ``create_*`` convenience functions; the core classes take explicit parameters.
"""

import os
from typing import Literal
from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

MIN_RESOLUTION = 0
MAX_RESOLUTION = 15


class GraphConfig(BaseModel):
    """Graph assembly configuration."""

    resolution: int = Field(default=9, description="H3 resolution the graph is built at")
    assembly_workers: int = Field(
        default=4, description="Worker threads for parallel weight-assignment passes"
    )
    min_longedge_len: int = Field(
        default=4, description="Minimum number of grid edges a prepared long edge spans"
    )

    @field_validator("resolution")
    @classmethod
    def validate_resolution(cls, v):
        """Ensure the resolution exists in the H3 hierarchy."""
        if not (MIN_RESOLUTION <= v <= MAX_RESOLUTION):
            raise ValueError(
                f"H3 resolution must be between {MIN_RESOLUTION} and {MAX_RESOLUTION}, got {v}"
            )
        return v

    @field_validator("assembly_workers")
    @classmethod
    def validate_workers(cls, v):
        if v < 1:
            raise ValueError("assembly_workers must be at least 1")
        return v

    @field_validator("min_longedge_len")
    @classmethod
    def validate_longedge_len(cls, v):
        if v < 2:
            raise ValueError("min_longedge_len must be at least 2")
        return v


class SearchConfig(BaseModel):
    """Path search configuration."""

    heuristic: Literal["none", "grid", "great_circle"] = Field(
        default="grid", description="A* heuristic used by single-pair searches"
    )
    batch_workers: int = Field(
        default=4, description="Worker pool size for batch routing"
    )

    @field_validator("batch_workers")
    @classmethod
    def validate_workers(cls, v):
        if v < 1:
            raise ValueError("batch_workers must be at least 1")
        return v


class SpatialIndexConfig(BaseModel):
    """Spatial index backend selection."""

    backend: Literal["balanced-tree", "dynamic-bvh-tree", "static-packed-bvh"] = Field(
        default="balanced-tree", description="Spatial index backend for coordinate snapping"
    )


class PersistenceConfig(BaseModel):
    """Serialized graph envelope configuration."""

    compression_level: int = Field(
        default=0, description="lz4 frame compression level (0 = fast mode)"
    )

    @field_validator("compression_level")
    @classmethod
    def validate_level(cls, v):
        if not (0 <= v <= 16):
            raise ValueError("compression_level must be between 0 and 16")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    format_str: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )
    enable_structured_logging: bool = Field(
        default=True, description="Enable structured JSON logging"
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    graph: GraphConfig
    search: SearchConfig
    spatial_index: SpatialIndexConfig
    persistence: PersistenceConfig
    logging: LoggingConfig

    # Environment
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")


def load_config() -> AppConfig:
    """Load and validate configuration from environment variables."""

    config_dict = {
        "graph": {
            "resolution": int(os.getenv("HEXGRAPH_RESOLUTION", "9")),
            "assembly_workers": int(os.getenv("HEXGRAPH_ASSEMBLY_WORKERS", "4")),
            "min_longedge_len": int(os.getenv("HEXGRAPH_MIN_LONGEDGE_LEN", "4")),
        },
        "search": {
            "heuristic": os.getenv("HEXGRAPH_HEURISTIC", "grid"),
            "batch_workers": int(os.getenv("HEXGRAPH_BATCH_WORKERS", "4")),
        },
        "spatial_index": {
            "backend": os.getenv("HEXGRAPH_SPATIAL_BACKEND", "balanced-tree"),
        },
        "persistence": {
            "compression_level": int(os.getenv("HEXGRAPH_COMPRESSION_LEVEL", "0")),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL", "INFO"),
            "enable_structured_logging": os.getenv(
                "ENABLE_STRUCTURED_LOGGING", "true"
            ).lower()
            == "true",
        },
        "environment": os.getenv("ENVIRONMENT", "development"),
        "debug": os.getenv("DEBUG", "false").lower() == "true",
    }

    return AppConfig(**config_dict)


# Global configuration instance
config = load_config()
