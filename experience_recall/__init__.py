"""
Experience Recall

Quality-filtered recall over first-person experience records: a boolean
quality filter DSL, reflects-link resolution, pluggable embeddings and vector
stores with graceful degradation, and a search orchestrator that ranks,
groups and paginates.
"""

__version__ = "1.0.0"
