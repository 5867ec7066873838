"""Persistence layer for the personal notes service."""
