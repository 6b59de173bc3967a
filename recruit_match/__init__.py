"""
recruit-match: semantic entity-matching engine for recruiting data.

Turns candidate, job and client profiles into embeddings and ranks
query results and cross-corpus pairs by cosine similarity.
"""

__version__ = "0.1.0"
__app_name__ = "recruit-match"
