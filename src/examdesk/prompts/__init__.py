"""Prompt templates and registry."""
