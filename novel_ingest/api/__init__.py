"""FastAPI application serving the health endpoint."""

from fastapi import FastAPI

from novel_ingest.api import health


def create_app() -> FastAPI:
    app = FastAPI(
        title="Novel Ingest",
        description="Kafka to record store and search index ingestion worker",
        version="0.1.0",
    )
    app.include_router(health.router)
    return app


__all__ = ["create_app"]
