"""Vlada billing backend - Core configuration, logging and exceptions."""
