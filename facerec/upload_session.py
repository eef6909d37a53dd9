"""
Upload enrollment flow.

    1. handle_file(): validate, decode and run detection on an image
    2. pick a face (selected_face_index, first face by default)
    3. enroll_selected(): enroll that face under a name
    4. reset()

Usage:
    session = UploadSession(detector, recognizer)
    session.handle_file(data, "image/jpeg")
    print(session.status_message)
    session.enroll_selected("Alice")
"""

import logging
from typing import List, Optional

import numpy as np

from facerec.exceptions import InvalidInput, NoFaceDetected
from facerec.face_detector import FaceDetector
from facerec.image_io import DEFAULT_MAX_UPLOAD_BYTES, decode_image, validate_upload
from facerec.models import DetectionResult, EnrolledFace
from facerec.overlay import draw_detections
from facerec.recognizer import DuplicateLabelPolicy, FaceRecognizer

logger = logging.getLogger(__name__)


class UploadSession:
    """
    State of one image-upload enrollment.

    Attributes:
        current_image: Decoded BGR image, or None.
        current_detections: Faces found in current_image.
        status_message: Human-readable outcome of the last step.
        is_error: Whether status_message describes a failure.
    """

    def __init__(
        self,
        detector: FaceDetector,
        recognizer: FaceRecognizer,
        max_file_size: int = DEFAULT_MAX_UPLOAD_BYTES,
    ):
        self.detector = detector
        self.recognizer = recognizer
        self.max_file_size = max_file_size

        self.current_image: Optional[np.ndarray] = None
        self.current_detections: List[DetectionResult] = []
        self._selected_face_index = 0
        self.status_message = ""
        self.is_error = False

    @property
    def selected_face_index(self) -> int:
        return self._selected_face_index

    @selected_face_index.setter
    def selected_face_index(self, index: int) -> None:
        if not 0 <= index < max(1, len(self.current_detections)):
            raise InvalidInput(f"Face index {index} out of range")
        self._selected_face_index = index

    def _set_status(self, message: str, is_error: bool = False) -> None:
        self.status_message = message
        self.is_error = is_error

    def handle_file(self, data: bytes, content_type: Optional[str] = None) -> List[DetectionResult]:
        """
        Validate, decode and detect faces in an uploaded image.

        Returns:
            The detections found (possibly empty).

        Raises:
            InvalidUpload: If the file is rejected or cannot be decoded.
        """
        self.reset()
        try:
            validate_upload(data, content_type, self.max_file_size)
            image = decode_image(data)
        except InvalidInput as e:
            self._set_status(str(e), is_error=True)
            raise

        return self.detect(image)

    def detect(self, image: np.ndarray) -> List[DetectionResult]:
        """Run detection on an already decoded image."""
        self.current_image = image
        self._selected_face_index = 0
        self._set_status("Detecting faces...")

        detections = self.detector.detect_faces(image, with_landmarks=True, with_descriptors=True)
        self.current_detections = detections

        if not detections:
            self._set_status(
                "No faces detected in this image. Please try another image with clear faces.",
                is_error=True,
            )
        elif len(detections) > 1:
            self._set_status(
                f"{len(detections)} faces detected. The first face will be used for enrollment."
            )
        else:
            self._set_status("1 face detected successfully!")

        logger.info(f"Upload: {len(detections)} face(s) detected")
        return detections

    def annotated_image(self, show_landmarks: bool = True) -> Optional[np.ndarray]:
        """Copy of the current image with detections drawn on it."""
        if self.current_image is None:
            return None
        return draw_detections(self.current_image.copy(), self.current_detections,
                               show_landmarks=show_landmarks)

    def enroll_selected(
        self,
        label: str,
        on_duplicate: Optional[DuplicateLabelPolicy] = None,
    ) -> EnrolledFace:
        """
        Enroll the selected face.

        Raises:
            InvalidInput: Empty name.
            NoFaceDetected: Nothing to enroll.
            MissingDescriptor / EnrollmentAborted / PersistenceError:
                Propagated from the recognizer.
        """
        if label is None or not label.strip():
            self._set_status("Please enter a name for this face", is_error=True)
            raise InvalidInput("Please enter a name for this face")

        if not self.current_detections:
            self._set_status("No face detected to enroll", is_error=True)
            raise NoFaceDetected("No face detected to enroll")

        detection = self.current_detections[self._selected_face_index]
        face = self.recognizer.enroll_from_detection(detection, label, on_duplicate=on_duplicate)

        self._set_status(f'Face enrolled successfully as "{face.label}"!')
        return face

    def reset(self) -> None:
        self.current_image = None
        self.current_detections = []
        self._selected_face_index = 0
        self._set_status("")
