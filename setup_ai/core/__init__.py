"""Core services shared by the analysis pipeline and the CLI."""
