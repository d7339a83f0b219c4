"""Wagerbot: a Discord economy bot built on an ephemeral interactive session engine."""

__version__ = "0.1.0"
