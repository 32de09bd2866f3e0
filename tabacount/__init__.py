"""Discord bot that counts cigarettes with one-tap buttons."""

__version__ = "0.1.0"
