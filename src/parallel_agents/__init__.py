"""Launch and supervise parallel interactive agent processes."""

__version__ = "0.1.0"
