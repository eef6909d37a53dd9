"""
Live Face Recognition Demo Script

Opens the webcam, detects faces every frame, and labels the ones that match
an enrolled face. Faces can be enrolled straight from the live feed.

Usage:
    python scripts/demo_live.py
    python scripts/demo_live.py --device 1 --threshold 0.5

Controls:
    - Press 'q' to quit
    - Press 'e' to enroll the visible face (name is typed in the terminal)
    - Press 'c' to clear all enrolled faces
    - Press 's' to switch camera
    - Press 'l' to toggle landmarks
    - Press '+' / '-' to raise / lower the threshold
    - Press 'p' to pause / resume processing
"""

import argparse
import logging
import sys
import time
from pathlib import Path

import cv2

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from facerec.camera import CameraManager
from facerec.config import (
    get_camera_config,
    get_detection_config,
    get_recognition_config,
    get_storage_config,
)
from facerec.descriptor_store import DEFAULT_NAMESPACE_KEY, DescriptorStore
from facerec.exceptions import FaceRecError
from facerec.face_detector import FaceDetector
from facerec.kv_backends import create_backend
from facerec.live_session import FrameResult, LiveRecognitionSession
from facerec.models import DuplicateAction
from facerec.overlay import draw_status
from facerec.recognizer import FaceRecognizer

WINDOW_NAME = "Face Recognition"
THRESHOLD_STEP = 0.05


def confirm_overwrite(label: str) -> DuplicateAction:
    """Ask in the terminal whether to overwrite an existing label."""
    answer = input(f'A face with name "{label}" already exists. Overwrite? [y/N] ')
    return DuplicateAction.OVERWRITE if answer.strip().lower() == "y" else DuplicateAction.ABORT


def enroll_from_session(session: LiveRecognitionSession) -> None:
    suggested = FaceRecognizer.generate_label()
    label = input(f"Enter a name for this face [{suggested}]: ").strip() or suggested
    try:
        face = session.enroll_current_face(label, on_duplicate=confirm_overwrite)
        print(f"Face enrolled successfully as \"{face.label}\"")
    except FaceRecError as e:
        print(f"Enrollment failed: {e}")


def main():
    parser = argparse.ArgumentParser(description="Live webcam face recognition demo")
    parser.add_argument("--device", type=int, default=None, help="Camera device index")
    parser.add_argument("--threshold", type=float, default=None, help="Match distance threshold")
    parser.add_argument("--no-landmarks", action="store_true", help="Hide landmark points")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    print("=" * 60)
    print("Live Face Recognition Demo")
    print("=" * 60)
    print()
    print("Controls:")
    print("  q - Quit")
    print("  e - Enroll visible face")
    print("  c - Clear all enrolled faces")
    print("  s - Switch camera")
    print("  l - Toggle landmarks")
    print("  +/- - Adjust threshold")
    print("  p - Pause / resume")
    print()

    storage_config = get_storage_config()
    store = DescriptorStore(
        create_backend(storage_config),
        namespace_key=storage_config.get("namespace_key", DEFAULT_NAMESPACE_KEY),
    ).open()
    recognizer = FaceRecognizer.from_config(store, get_recognition_config())
    if args.threshold is not None:
        recognizer.threshold = args.threshold

    print("Loading face detection models...")
    detector = FaceDetector(get_detection_config())
    detector.init()

    camera = CameraManager(get_camera_config())
    session = LiveRecognitionSession(
        camera, detector, recognizer, show_landmarks=not args.no_landmarks
    )

    try:
        session.start(args.device)
    except FaceRecError as e:
        print(f"ERROR: {e}")
        store.close()
        return

    print(f"Enrolled faces: {recognizer.enrollment_count}")
    print("Starting live demo... Press 'q' to quit.")

    fps_start_time = time.time()
    fps_frame_count = 0
    current_fps = 0.0

    def on_frame(result: FrameResult) -> bool:
        nonlocal fps_start_time, fps_frame_count, current_fps

        if result.frame is not None:
            fps_frame_count += 1
            elapsed = time.time() - fps_start_time
            if elapsed >= 1.0:
                current_fps = fps_frame_count / elapsed
                fps_frame_count = 0
                fps_start_time = time.time()

            names = ", ".join(
                f"{r.label} {round(r.confidence * 100)}%" for r in result.recognized
            ) or "No recognized faces"
            draw_status(
                result.frame,
                f"{session.mode} | faces: {result.face_count} | thr: {session.threshold:.2f} "
                f"| {current_fps:.0f} fps | {names}",
            )
            cv2.imshow(WINDOW_NAME, result.frame)

        key = cv2.waitKey(1) & 0xFF
        if key == ord("q"):
            return False
        if key == ord("e"):
            enroll_from_session(session)
        elif key == ord("c"):
            if recognizer.enrollment_count == 0:
                print("No enrolled faces to clear.")
            elif input("Clear all enrolled faces? This cannot be undone. [y/N] ").strip().lower() == "y":
                recognizer.clear_all()
                print("All enrolled faces cleared")
        elif key == ord("s"):
            try:
                session.switch_camera()
            except FaceRecError as e:
                print(f"Switch failed: {e}")
        elif key == ord("l"):
            session.show_landmarks = not session.show_landmarks
        elif key in (ord("+"), ord("=")):
            session.threshold = session.threshold + THRESHOLD_STEP
        elif key == ord("-"):
            session.threshold = max(0.0, session.threshold - THRESHOLD_STEP)
        elif key == ord("p"):
            if session.is_paused:
                session.resume()
            else:
                session.pause()
        return True

    try:
        frames = session.run(on_frame=on_frame)
        print(f"Processed {frames} frames")
    finally:
        session.stop()
        recognizer.close()
        store.close()
        cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
