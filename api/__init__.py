"""
API Layer for the Face Enrollment & Recognition Demo

This package provides the FastAPI-based API layer that exposes:
- REST endpoints for enrolling, listing and removing faces
- REST endpoints for detecting and recognizing faces in images
- Health check and statistics endpoints
"""
