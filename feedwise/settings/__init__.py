"""Application settings loading."""

from .app import AppSettings, UndatedPolicy


__all__ = ["AppSettings", "UndatedPolicy"]
