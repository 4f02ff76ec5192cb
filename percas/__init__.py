"""Building blocks for an HTTP key-value cache server: responses, middlewares, metrics, scheduled reporting and logging setup."""

__version__ = "0.2.1"