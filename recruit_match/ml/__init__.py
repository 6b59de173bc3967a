"""
Machine Learning modules for recruit-match.

Submodules:
- embeddings: Embedding provider, vector cache and similarity ranking
"""
