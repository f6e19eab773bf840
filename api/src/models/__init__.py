"""Data models for the FastAPI service.

This package contains the Pydantic request/response schemas. Persisted
documents are plain MongoDB documents keyed by the same camelCase names the
schemas use on the wire.
"""
