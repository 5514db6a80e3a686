"""Vigia: public-spending aggregation engine for tracked officials."""

__version__ = "0.1.0"
