"""
Live camera recognition flow.

Reads frames from a CameraManager, detects faces, recognizes them when any
identity is enrolled, and draws the results. The per-frame loop queries the
recognizer repeatedly; enrollments made between frames are visible from the
next frame on.

Usage:
    session = LiveRecognitionSession(camera, detector, recognizer)
    session.start()
    result = session.process_frame()
    session.enroll_current_face("Alice")
    session.stop()
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np

from facerec.camera import CameraManager
from facerec.exceptions import MultipleFacesDetected, NoFaceDetected
from facerec.face_detector import FaceDetector
from facerec.models import DetectionResult, EnrolledFace, RecognitionResult
from facerec.overlay import draw_detections
from facerec.recognizer import DuplicateLabelPolicy, FaceRecognizer

logger = logging.getLogger(__name__)


@dataclass
class FrameResult:
    """Outcome of processing one frame."""

    frame: Optional[np.ndarray]
    detections: List[DetectionResult] = field(default_factory=list)
    recognitions: List[RecognitionResult] = field(default_factory=list)

    @property
    def face_count(self) -> int:
        return len(self.detections)

    @property
    def recognized(self) -> List[RecognitionResult]:
        return [r for r in self.recognitions if r.is_match]


class LiveRecognitionSession:
    """
    Drives the recognizer from camera frames.

    Args:
        camera: Camera manager supplying frames.
        detector: Initialized face detector.
        recognizer: Recognizer holding the enrolled faces.
        show_landmarks: Draw landmark points on annotated frames.
    """

    def __init__(
        self,
        camera: CameraManager,
        detector: FaceDetector,
        recognizer: FaceRecognizer,
        show_landmarks: bool = True,
    ):
        self.camera = camera
        self.detector = detector
        self.recognizer = recognizer
        self.show_landmarks = show_landmarks

        self.is_processing = False
        self.is_paused = False
        self.current_detections: List[DetectionResult] = []
        self.current_recognitions: List[RecognitionResult] = []

    @property
    def threshold(self) -> float:
        return self.recognizer.threshold

    @threshold.setter
    def threshold(self, value: float) -> None:
        self.recognizer.threshold = value

    @property
    def mode(self) -> str:
        return "Recognition active" if self.recognizer.has_enrolled_faces else "Detection only"

    # ------------------------------------------------------------------
    # Camera lifecycle
    # ------------------------------------------------------------------

    def start(self, device_id: Optional[int] = None) -> None:
        """Start the camera and begin processing."""
        self.camera.start(device_id)
        self.is_processing = True
        self.is_paused = False
        logger.info("Camera active - Detecting faces")

    def stop(self) -> None:
        """Stop processing and release the camera."""
        self.is_processing = False
        self.is_paused = False
        self.camera.stop()
        self.current_detections = []
        self.current_recognitions = []

    def switch_camera(self) -> None:
        self.camera.switch()

    def pause(self) -> None:
        if self.is_processing:
            self.is_paused = True

    def resume(self) -> None:
        if self.is_processing and self.camera.is_active:
            self.is_paused = False

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def process_frame(self, frame: Optional[np.ndarray] = None) -> FrameResult:
        """
        Detect and recognize faces in one frame.

        Args:
            frame: BGR frame to process. Read from the camera when omitted.

        Returns:
            FrameResult with an annotated copy of the frame. Recognition is
            skipped while no faces are enrolled.
        """
        if frame is None:
            ok, frame = self.camera.read_frame()
            if not ok:
                return FrameResult(frame=None)

        detections = self.detector.detect_faces(
            frame,
            with_landmarks=self.show_landmarks,
            with_descriptors=True,
        )

        if detections and self.recognizer.has_enrolled_faces:
            recognitions = self.recognizer.recognize_all(detections)
        else:
            recognitions = []

        self.current_detections = detections
        self.current_recognitions = recognitions

        annotated = draw_detections(
            frame.copy(),
            detections,
            recognition_results=recognitions or None,
            show_landmarks=self.show_landmarks,
        )
        return FrameResult(frame=annotated, detections=detections, recognitions=recognitions)

    def run(
        self,
        max_frames: Optional[int] = None,
        on_frame: Optional[Callable[[FrameResult], bool]] = None,
    ) -> int:
        """
        Process frames until stopped, the camera fails, or max_frames is hit.

        Args:
            max_frames: Stop after this many processed frames.
            on_frame: Called with each FrameResult; returning False stops the loop.

        Returns:
            Number of frames processed.
        """
        processed = 0
        while self.is_processing:
            if max_frames is not None and processed >= max_frames:
                break
            if self.is_paused:
                # Only the callback can resume a paused loop
                if on_frame is None or on_frame(FrameResult(frame=None)) is False:
                    break
                continue

            result = self.process_frame()
            if result.frame is None:
                logger.warning("Camera returned no frame, stopping")
                break

            processed += 1
            if on_frame is not None and on_frame(result) is False:
                break

        return processed

    # ------------------------------------------------------------------
    # Enrollment
    # ------------------------------------------------------------------

    def enroll_current_face(
        self,
        label: str,
        on_duplicate: Optional[DuplicateLabelPolicy] = None,
    ) -> EnrolledFace:
        """
        Enroll the single face visible in the last processed frame.

        Raises:
            NoFaceDetected: No face in the last frame.
            MultipleFacesDetected: More than one face in the last frame.
            MissingDescriptor / InvalidInput / EnrollmentAborted: From the recognizer.
        """
        if not self.current_detections:
            raise NoFaceDetected("No faces detected. Please ensure your face is visible.")

        if len(self.current_detections) > 1:
            raise MultipleFacesDetected(
                "Multiple faces detected. Please ensure only one face is visible."
            )

        return self.recognizer.enroll_from_detection(
            self.current_detections[0], label, on_duplicate=on_duplicate
        )
