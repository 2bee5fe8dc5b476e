"""
Core business logic modules for Artisan Match.

Submodules:
- exceptions: Error taxonomy shared by every layer
- matching: Similarity search engine and the matching service facade
"""
