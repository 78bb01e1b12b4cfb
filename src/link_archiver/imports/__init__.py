"""Importers that turn third-party bookmark exports into ingest batches."""
