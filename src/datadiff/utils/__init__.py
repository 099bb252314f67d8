"""
Ambient services: logging, metrics, tracing, retries and secrets.
"""
