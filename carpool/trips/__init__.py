"""Trips module."""
