"""Utility helpers shared across the outliner package."""
