"""
HTTP routes for the sentry service.
"""
