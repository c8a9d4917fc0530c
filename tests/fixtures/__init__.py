"""Shared test fixtures and sample data for Category Service tests.

This package provides:
- Entity rows shaped like repository results
- AsyncMock repositories with the TaxonomyRepository surface
"""

__all__ = [
    "entities",
]
