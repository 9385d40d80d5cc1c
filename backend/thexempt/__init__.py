"""TheXempt project-collaboration backend.

This package exposes the service, repository and model modules used by
the FastAPI application, plus the pure skill-match scoring
(`scoring`) and reputation/badge (`reputation`) logic they share.
"""
