"""Chat2Portfolio - build a profile by conversation and regenerate a portfolio site from it."""

__version__ = "0.1.0"
