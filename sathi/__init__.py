"""Sewa Sathi: voice command assistant for accessible websites."""

__version__ = "0.1.0"
