"""Ostobilling subscription-billing backend."""
