"""effectscan package root."""

from effectscan.markers import declare, entrypoint, infer

__all__ = ["__version__", "declare", "entrypoint", "infer"]

__version__ = "0.1.0"
