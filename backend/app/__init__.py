# backend/app/__init__.py
"""
Notion grid widget backend package.

This package contains:
- main: FastAPI application entrypoint
- notion: Notion fetch / normalize / cache layer and its HTTP routes
- utils: environment configuration helpers
"""
