"""Adapters connecting the domain to storage, source registers and external APIs."""
