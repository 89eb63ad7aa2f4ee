"""Application settings loading."""

from .app import PipelineSettings, get_settings


__all__ = ["PipelineSettings", "get_settings"]
