"""
Application package.

The project is organised into logical pieces: ``core`` holds
configuration, logging, errors and the database bootstrap; ``storage``
holds the catalog persistence; ``schemas`` the pydantic records; and
``api`` the routers and endpoints.
"""
