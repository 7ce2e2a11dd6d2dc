"""Optimistic mutations, the offline queue and periodic jobs."""
