"""Agents that run as nodes of the analysis graph."""
