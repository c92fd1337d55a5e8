"""Adapters for the model backend and the provisioning engine."""
