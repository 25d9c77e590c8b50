"""Application package for the learning-management backend.

This package exposes the service, repository and model modules used by
the FastAPI application that tracks courses, learning plans and the
modules that bind them together.
"""
