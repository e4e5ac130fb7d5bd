"""Ground station for commanding a remote mapping robot over a serial link."""

__version__ = "1.0.0"
