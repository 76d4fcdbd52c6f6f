"""Turn a Git repository into a single text digest for language models."""

from repo_ingest.ingestion import ingest, ingest_async

__version__ = "0.1.0"

__all__ = ["__version__", "ingest", "ingest_async"]
