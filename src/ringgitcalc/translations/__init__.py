"""Locale catalogues shipped as package data."""
