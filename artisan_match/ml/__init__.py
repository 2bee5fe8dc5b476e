"""
Machine Learning modules for Artisan Match.

Submodules:
- nlp: Query processing, facet extraction and profile enrichment
- embeddings: Embedding client, vector fusion and vector index adapters
"""
