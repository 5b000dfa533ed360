"""Carpool scheduler: fair weekly driver assignment for school carpool groups."""

__version__ = "1.0.0"
