"""Models package - SQLModel database models."""

from feedrelay.models.item import Item, ItemReason, ItemStatus, Stage

__all__ = ["Item", "ItemReason", "ItemStatus", "Stage"]
