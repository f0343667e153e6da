"""
API Routes Package
==================
Helpers shared by the FastAPI handlers in api.py.

Modules:
  helpers  - snapshot access, query parsing, payload shaping
"""
