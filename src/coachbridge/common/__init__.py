"""Shared configuration models."""

from .config_validator import AppConfig, IngestConfig, load_config

__all__ = ["AppConfig", "IngestConfig", "load_config"]
