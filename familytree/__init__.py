"""Family tree keeper: JSON-backed people/relationship store with a generational tree layout."""

__version__ = "0.1.0"
