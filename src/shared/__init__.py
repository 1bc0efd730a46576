"""Helpers shared across the timer, economy, and storage packages."""
