"""Utility helpers shared by the LeafCrop services and CLI."""
