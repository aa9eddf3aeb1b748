"""Pydantic models for the finance tracker API."""
