"""Adapters connecting the ingestion pipeline to external sources and storage."""
