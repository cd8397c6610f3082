"""Configuration for novel-ingest."""

from novel_ingest.config.settings import CommitPolicy, Settings, get_settings

__all__ = ["CommitPolicy", "Settings", "get_settings"]
