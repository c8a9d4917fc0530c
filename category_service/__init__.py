"""Category Service: taxonomy CRUD with a read-through cache."""

__version__ = "1.0.0"
