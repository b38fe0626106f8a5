"""devbox — reproducible, declarative development environments."""

__version__ = "0.1.0"
