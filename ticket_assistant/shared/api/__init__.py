"""
Shared API
==========

Middleware, exception handlers and identity dependencies shared by all
routers.
"""
