"""Ports, events, errors and shared application state."""
