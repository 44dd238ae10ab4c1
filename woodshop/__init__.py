"""
Backend package for the woodshop marketing site.

This package provides a FastAPI application for admin sign-in, editable
site content, project records and Cloudinary asset housekeeping, with
database and asset-host abstractions so tests can run fully in memory.
"""
