"""Persona chat gateway for owner-published digital twin chatbots."""

__version__ = "1.0.0"
