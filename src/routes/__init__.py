"""
API Routes Package
==================
Route handlers live in api.py; this package holds what they share.

Modules:
  helpers  - request parsing, catalog loading, response shaping
"""
