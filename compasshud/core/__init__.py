"""Logging, configuration, diagnostics and update gating."""
