"""Collaborators around the core pipeline: issue explanations and task export."""
