"""Building blocks for small HTTP servers: writers, renderers, gzip, signed requests, timeouts."""

__version__ = "0.1.0"