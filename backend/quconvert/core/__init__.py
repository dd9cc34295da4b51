"""Configuration and error handling shared by all converter stages."""
