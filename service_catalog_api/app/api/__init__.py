"""
HTTP layer: routers, endpoints and request dependencies.
"""
