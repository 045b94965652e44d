"""Library package for image handling and data schemas.

This package contains the helpers used by the API endpoints around a
generation call: decoding and validating uploaded photos, building data
URLs for generated images, and the Pydantic models exchanged with the
agent and returned to clients. See individual modules for details.
"""
