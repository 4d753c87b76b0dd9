"""Ports consumed by the pipeline and graph assembly."""
