"""Herald: notification preference gating, digests and feed service."""

__version__ = "1.0.0"
