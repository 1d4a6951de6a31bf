"""Pydantic schemas for collaborators, reports and the API."""
