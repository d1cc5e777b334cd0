"""keyrelay — API credential rotation and generation-backend dispatch."""

__version__ = "0.1.0"
