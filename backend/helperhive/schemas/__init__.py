# backend/helperhive/schemas/__init__.py
"""Pydantic request and response schemas for the HelperHive API."""
