"""Configuration — settings sources, section models, discovery, logging."""
