"""Profiling, issue detection and scoring primitives used by the agents."""
