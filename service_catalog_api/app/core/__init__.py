"""
Cross-cutting pieces: configuration, logging, errors, database bootstrap,
authentication and response helpers.
"""
