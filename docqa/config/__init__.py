"""Configuration: environment-driven settings, YAML defaults, pipeline constants."""
