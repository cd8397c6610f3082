"""novel-ingest: Kafka consumer that stores crawled Pixiv novels and indexes them for search."""

__version__ = "0.1.0"
