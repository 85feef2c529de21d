"""Core primitives shared by every pipeline stage: logging and errors."""
