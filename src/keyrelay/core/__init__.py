"""Shared infrastructure: config, settings store, errors, logging, CLI."""
