"""Result rendering for the CLI."""
