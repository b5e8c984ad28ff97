"""Operational scripts for the CardHub gateway."""
