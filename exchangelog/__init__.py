"""
HTTP exchange logging middleware for ASGI applications.

Every request/response pair passing through the middleware is captured
and written as one formatted record to a rotating log file and the console.
"""

__version__ = "1.0.0"
