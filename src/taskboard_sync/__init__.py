"""Client-side state synchronization engine for a collaborative task board."""

__version__ = "0.1.0"
