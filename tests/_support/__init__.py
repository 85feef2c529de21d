"""
Test support utilities for buildspine tests.

Helpers that don't fit as pytest fixtures but are shared across test
modules: the recording command runner and fault injection for it.
"""
