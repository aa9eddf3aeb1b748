"""Configuration and database helpers."""
