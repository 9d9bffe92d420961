"""
Query API Module

aiohttp.web application serving the history store as JSON.
"""
from query_api.server import ApiServer, create_app

__all__ = [
    "ApiServer",
    "create_app",
]
