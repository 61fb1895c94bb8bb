"""Compatibility definitions, one module per host release."""
