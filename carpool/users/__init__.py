"""User administration module."""
