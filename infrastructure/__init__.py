"""Infrastructure layer for the audio feature engine.

Modules:
    metrics     Prometheus metrics registry and analysis recording helpers.
"""
