"""
Shared API
==========

Middleware and exception handlers installed on the FastAPI application.
"""
