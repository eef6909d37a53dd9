"""
Overlay helpers for drawing detection and recognition results.

Provides:
- draw_detections(): boxes, confidence tags, recognized labels, landmarks
- draw_status(): one-line status banner at the top of the frame
"""

import cv2
import numpy as np
from typing import Optional, Sequence

from facerec.models import DetectionResult, RecognitionResult


_BOX_COLOR = (246, 130, 59)        # BGR blue
_MATCH_COLOR = (129, 185, 16)      # BGR green
_UNKNOWN_COLOR = (128, 114, 107)   # BGR gray
_LANDMARK_COLOR = (129, 185, 16)
_TEXT_COLOR = (255, 255, 255)


def _draw_tag(frame: np.ndarray, text: str, origin, bg_color, scale: float = 0.5) -> None:
    """Filled rectangle with white text; origin is the tag's top-left corner."""
    x, y = origin
    (tw, th), baseline = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, scale, 1)
    h, w = frame.shape[:2]
    x = max(0, min(x, w - tw - 10))
    y = max(0, min(y, h - th - baseline - 8))
    cv2.rectangle(frame, (x, y), (x + tw + 10, y + th + baseline + 8), bg_color, -1)
    cv2.putText(frame, text, (x + 5, y + th + 4), cv2.FONT_HERSHEY_SIMPLEX,
                scale, _TEXT_COLOR, 1, cv2.LINE_AA)


def draw_detections(
    frame: np.ndarray,
    detections: Sequence[DetectionResult],
    recognition_results: Optional[Sequence[RecognitionResult]] = None,
    show_landmarks: bool = True,
) -> np.ndarray:
    """Draw detections on a BGR frame.

    Args:
        frame: BGR image to draw on (modified in-place).
        detections: Faces to draw.
        recognition_results: Optional results aligned with detections by index.
        show_landmarks: Draw landmark points when available.

    Returns:
        The same frame, for chaining.
    """
    if not detections:
        return frame

    for index, detection in enumerate(detections):
        box = detection.bounding_box
        x1, y1 = int(round(box.x)), int(round(box.y))
        x2, y2 = int(round(box.x + box.width)), int(round(box.y + box.height))

        cv2.rectangle(frame, (x1, y1), (x2, y2), _BOX_COLOR, 2)

        confidence = int(round(detection.score * 100))
        _draw_tag(frame, f"{confidence}% confident", (x1, y1 - 28), (0, 0, 0))

        if recognition_results is not None and index < len(recognition_results):
            result = recognition_results[index]
            color = _MATCH_COLOR if result.is_match else _UNKNOWN_COLOR
            _draw_tag(frame, result.label, (x1, y2 + 4), color, scale=0.55)

        if show_landmarks and detection.landmarks is not None:
            for px, py in np.asarray(detection.landmarks).reshape(-1, 2):
                cv2.circle(frame, (int(round(px)), int(round(py))), 2,
                           _LANDMARK_COLOR, -1, cv2.LINE_AA)

    return frame


def draw_status(frame: np.ndarray, message: str) -> np.ndarray:
    """Draw a semi-transparent status banner across the top of the frame."""
    h, w = frame.shape[:2]
    overlay = frame.copy()
    cv2.rectangle(overlay, (0, 0), (w, 28), (0, 0, 0), -1)
    cv2.addWeighted(overlay, 0.6, frame, 0.4, 0, frame)
    cv2.putText(frame, message, (8, 19), cv2.FONT_HERSHEY_SIMPLEX,
                0.5, _TEXT_COLOR, 1, cv2.LINE_AA)
    return frame
