"""
Shopmate HTTP API (FastAPI).

Import the application factory from ``shopmate.api.app``.
"""
