"""
Observability package: logging configuration, correlation IDs, request middleware.
"""
