"""
API Routes Package

This package contains route handlers organized by feature:
- faces.py: Enrollment and management of enrolled faces
- recognition.py: Detection and recognition endpoints
"""

from api.routes.faces import router as faces_router
from api.routes.recognition import router as recognition_router

__all__ = [
    "faces_router",
    "recognition_router",
]
