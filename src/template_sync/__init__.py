"""Template distribution engine for agent configuration trees."""

__version__ = "0.3.0"
