"""Logging and self-telemetry for kubestate."""
