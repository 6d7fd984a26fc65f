"""Reverse relation query building and field behaviour."""
