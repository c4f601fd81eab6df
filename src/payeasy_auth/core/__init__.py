"""Core configuration, errors and cryptographic helpers."""
