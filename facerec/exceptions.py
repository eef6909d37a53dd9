"""
Error types raised by the face enrollment and recognition components.

All errors derive from FaceRecError so callers (API layer, scripts) can
catch the whole family in one place. None of them is fatal to the host
process.

Note:
    Removing a label that is not enrolled is not an error; remove() returns
    False instead.
"""


class FaceRecError(Exception):
    """Base class for all face recognition errors."""


class InvalidInput(FaceRecError, ValueError):
    """Empty label, empty/non-finite descriptor, or mismatched dimension."""


class InvalidUpload(InvalidInput):
    """Uploaded file is not an image, is empty, or is too large."""


class MissingDescriptor(FaceRecError):
    """Enrollment attempted from a detection that has no descriptor."""


class NoFaceDetected(FaceRecError):
    """Enrollment attempted while no face is detected."""


class MultipleFacesDetected(FaceRecError):
    """Enrollment attempted while more than one face is visible."""


class EnrollmentAborted(FaceRecError):
    """The duplicate-label policy declined to overwrite an existing label."""

    def __init__(self, label: str):
        super().__init__(f"A face with name '{label}' already exists; enrollment cancelled")
        self.label = label


class PersistenceError(FaceRecError):
    """Writing the descriptor store failed; the mutation was not committed."""


class PersistenceCorrupt(FaceRecError):
    """Persisted data could not be parsed. Recovered locally, never propagated."""


class DetectorError(FaceRecError, RuntimeError):
    """The external detection model is unavailable or not initialized."""


class CameraError(FaceRecError, RuntimeError):
    """Camera could not be opened, read, or switched."""
