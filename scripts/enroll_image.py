"""
Image Enrollment Script

Enroll faces from image files, and list / remove enrolled faces, without
the API server.

Usage:
    python scripts/enroll_image.py enroll --label "Alice" photos/alice.jpg
    python scripts/enroll_image.py enroll --label "Alice" --face-index 1 --overwrite group.jpg
    python scripts/enroll_image.py recognize photos/unknown.jpg --output annotated.jpg
    python scripts/enroll_image.py list
    python scripts/enroll_image.py remove "Alice"
    python scripts/enroll_image.py clear
"""

import argparse
import logging
import mimetypes
import sys
from pathlib import Path

import cv2

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from facerec.config import (
    get_detection_config,
    get_recognition_config,
    get_storage_config,
    get_upload_config,
)
from facerec.descriptor_store import DEFAULT_NAMESPACE_KEY, DescriptorStore
from facerec.exceptions import FaceRecError
from facerec.face_detector import FaceDetector
from facerec.kv_backends import create_backend
from facerec.overlay import draw_detections
from facerec.recognizer import FaceRecognizer, always_overwrite, never_overwrite
from facerec.upload_session import UploadSession


def open_recognizer():
    storage_config = get_storage_config()
    store = DescriptorStore(
        create_backend(storage_config),
        namespace_key=storage_config.get("namespace_key", DEFAULT_NAMESPACE_KEY),
    ).open()
    return store, FaceRecognizer.from_config(store, get_recognition_config())


def load_detector() -> FaceDetector:
    detector = FaceDetector(get_detection_config())
    detector.init()
    return detector


def cmd_enroll(args, recognizer: FaceRecognizer) -> int:
    max_bytes = int(get_upload_config().get("max_file_size_mb", 10) * 1024 * 1024)
    session = UploadSession(load_detector(), recognizer, max_file_size=max_bytes)

    path = Path(args.image)
    content_type = mimetypes.guess_type(str(path))[0]
    session.handle_file(path.read_bytes(), content_type)
    print(session.status_message)

    if session.current_detections:
        session.selected_face_index = args.face_index

    policy = always_overwrite if args.overwrite else never_overwrite
    session.enroll_selected(args.label, on_duplicate=policy)
    print(session.status_message)
    return 0


def cmd_recognize(args, recognizer: FaceRecognizer) -> int:
    detector = load_detector()
    image = cv2.imread(args.image)
    if image is None:
        print(f"ERROR: Could not read image {args.image}")
        return 1

    detections = detector.detect_faces(image)
    results = recognizer.recognize_all(detections, threshold=args.threshold)

    print(f"{len(detections)} face(s) detected")
    for i, (det, res) in enumerate(zip(detections, results)):
        box = det.bounding_box
        print(f"  [{i}] ({box.x:.0f}, {box.y:.0f}, {box.width:.0f}x{box.height:.0f}) "
              f"-> {res.label} (distance={res.distance:.3f}, match={res.is_match})")

    if args.output:
        draw_detections(image, detections, recognition_results=results)
        cv2.imwrite(args.output, image)
        print(f"Annotated image saved to {args.output}")
    return 0


def cmd_list(args, recognizer: FaceRecognizer) -> int:
    faces = recognizer.store.faces()
    print(f"{len(faces)} enrolled face(s)")
    for face in faces:
        print(f"  - {face.label} (dim={face.dimension}, enrolled {face.enrolled_at})")
    return 0


def cmd_remove(args, recognizer: FaceRecognizer) -> int:
    if recognizer.remove(args.label):
        print(f"Face removed for: {args.label}")
        return 0
    print(f"No enrolled face named '{args.label}'")
    return 1


def cmd_clear(args, recognizer: FaceRecognizer) -> int:
    count = recognizer.enrollment_count
    recognizer.clear_all()
    print(f"Cleared {count} enrolled face(s)")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Enroll and manage faces from image files")
    sub = parser.add_subparsers(dest="command", required=True)

    p_enroll = sub.add_parser("enroll", help="Enroll a face from an image")
    p_enroll.add_argument("image", help="Image file")
    p_enroll.add_argument("--label", required=True, help="Name for the face")
    p_enroll.add_argument("--face-index", type=int, default=0, help="Which detected face (left to right)")
    p_enroll.add_argument("--overwrite", action="store_true", help="Replace an existing face with this name")
    p_enroll.set_defaults(func=cmd_enroll)

    p_recognize = sub.add_parser("recognize", help="Recognize faces in an image")
    p_recognize.add_argument("image", help="Image file")
    p_recognize.add_argument("--threshold", type=float, default=None, help="Match distance threshold")
    p_recognize.add_argument("--output", default=None, help="Write an annotated copy here")
    p_recognize.set_defaults(func=cmd_recognize)

    p_list = sub.add_parser("list", help="List enrolled faces")
    p_list.set_defaults(func=cmd_list)

    p_remove = sub.add_parser("remove", help="Remove an enrolled face")
    p_remove.add_argument("label", help="Name of the face")
    p_remove.set_defaults(func=cmd_remove)

    p_clear = sub.add_parser("clear", help="Remove every enrolled face")
    p_clear.set_defaults(func=cmd_clear)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    store, recognizer = open_recognizer()
    try:
        return args.func(args, recognizer)
    except FaceRecError as e:
        print(f"ERROR: {e}")
        return 1
    finally:
        recognizer.close()
        store.close()


if __name__ == "__main__":
    sys.exit(main())
