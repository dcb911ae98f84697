"""
Matching Module
===============

Bounded Context for answering questions from the curated knowledge base.

Responsibilities:
- Hybrid matching: vector search, lexical fallback, weighted scan
- Confidence scoring against a runtime-adjustable threshold
- Keyword-based category detection for escalations
- Pushing KB questions into the vector index
"""

__version__ = "1.0.0"
