"""Engines operating on the swayr tree model."""
