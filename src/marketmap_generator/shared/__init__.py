"""Shared models and exceptions for market map generation."""
