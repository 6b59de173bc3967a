"""
Core business logic modules for recruit-match.

Submodules:
- exceptions: Matching engine error taxonomy
- matching: Corpus builds, semantic search and cross-matching
"""
