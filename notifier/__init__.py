"""Push notification fan-out with per-token delivery accounting and dead-token pruning."""

__version__ = "0.1.0"
