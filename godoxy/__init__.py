"""Building blocks of a container-aware reverse proxy: errors, config, labels, certificates."""

__version__ = "0.1.0"