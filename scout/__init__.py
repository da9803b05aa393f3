"""Visual supplier search: drives a marketplace's image search in a headless browser."""

__version__ = "1.0.0"
