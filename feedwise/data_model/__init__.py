"""Shared data model primitives."""

from feedwise.data_model.base import Clock, StrictBaseModel, ensure_utc, utc_now


__all__ = ["Clock", "StrictBaseModel", "ensure_utc", "utc_now"]
