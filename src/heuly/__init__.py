"""Heuly account API package."""
