"""
Data layer for Artisan Match.

Submodules:
- models: Pydantic read models for artisan profiles and buyer interactions
"""
