"""Pydantic request/response models for the searchmetrics API."""
