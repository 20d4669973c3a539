"""Application package for the classroom training-data store.

This package exposes the store, repository and model modules used by
the FastAPI application. Students submit labeled numeric training
examples to projects owned within a class; the store validates them,
enforces per-project limits and serves paginated listings.
"""
