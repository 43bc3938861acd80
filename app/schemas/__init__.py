"""
schemas/ — Pydantic request bodies and queue message contracts

Provides input validation, auto-generated OpenAPI docs, and
consistent error messages across the boutique endpoints.
"""
