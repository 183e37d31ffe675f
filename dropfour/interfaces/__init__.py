"""
dropfour.interfaces - Terminal front end, HTTP server and HTTP client
"""

# Don't import anything here; the server pulls in Flask
__all__ = []
