"""
Pydantic schema definitions for API payloads.

Schemas double as the domain records exchanged between the storage
layer and the handlers; they carry no behaviour and are freely copied
between layers.
"""
