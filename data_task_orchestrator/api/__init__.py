"""HTTP interface for the analysis pipeline."""
