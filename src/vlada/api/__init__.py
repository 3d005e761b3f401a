"""Vlada billing backend - HTTP API."""
