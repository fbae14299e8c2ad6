"""Compatibility scoring and greedy pairing for campus matching runs."""

__version__ = "0.1.0"
