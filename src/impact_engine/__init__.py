"""impact-engine: dependency-impact analysis over a unit/field graph."""

__version__ = "1.0.0"
