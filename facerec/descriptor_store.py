"""
Descriptor Store Module

Holds the set of enrolled (label, descriptor) pairs and keeps it in sync
with a key-value backend.

Persisted layout (one record under the namespace key):

    {
        "Alice": {"descriptor": [0.01, ...], "label": "Alice",
                  "enrolledAt": "2026-01-01T12:00:00"},
        ...
    }

Every mutation is written through immediately. If the write fails the
in-memory change is rolled back and PersistenceError is raised, so memory
and storage never disagree.

Usage:
    from facerec.descriptor_store import DescriptorStore
    from facerec.kv_backends import SQLiteKeyValueStore

    with DescriptorStore(SQLiteKeyValueStore("storage/faces.sqlite")) as store:
        store.enroll("Alice", descriptor)
        print(store.list_labels())
"""

import json
import logging
from typing import Callable, Dict, List, Optional

import numpy as np

from facerec.exceptions import InvalidInput, PersistenceCorrupt, PersistenceError
from facerec.kv_backends import KeyValueStore, MemoryKeyValueStore
from facerec.models import EnrolledFace

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE_KEY = "enrolledFaces"

StoreListener = Callable[["DescriptorStore"], None]


def validate_label(label: Optional[str]) -> str:
    """Return label unchanged, or raise InvalidInput if it is empty."""
    if label is None or not isinstance(label, str) or not label.strip():
        raise InvalidInput("Face label is required")
    return label


def validate_descriptor(descriptor, expected_dim: Optional[int] = None) -> np.ndarray:
    """
    Coerce a descriptor to a flat float32 array and validate it.

    Raises:
        InvalidInput: If the descriptor is None, empty, non-numeric,
                      contains NaN/inf, or has the wrong dimension.
    """
    if descriptor is None:
        raise InvalidInput("Face descriptor is required")
    try:
        vec = np.asarray(descriptor, dtype=np.float32).ravel()
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"Face descriptor is not numeric: {e}") from e
    if vec.size == 0:
        raise InvalidInput("Face descriptor is empty")
    if not np.all(np.isfinite(vec)):
        raise InvalidInput("Face descriptor contains non-finite values")
    if expected_dim is not None and vec.shape[0] != expected_dim:
        raise InvalidInput(
            f"Descriptor dimension mismatch: expected {expected_dim}, got {vec.shape[0]}"
        )
    return vec


class DescriptorStore:
    """
    In-memory set of enrolled faces with write-through persistence.

    Attributes:
        backend: Key-value backend the store persists to.
        namespace_key: Key under which the serialized mapping is stored.
    """

    def __init__(
        self,
        backend: Optional[KeyValueStore] = None,
        namespace_key: str = DEFAULT_NAMESPACE_KEY,
    ):
        self.backend = backend if backend is not None else MemoryKeyValueStore()
        self.namespace_key = namespace_key
        self._faces: Dict[str, EnrolledFace] = {}
        self._listeners: List[StoreListener] = []
        self._is_open = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> "DescriptorStore":
        """Load persisted faces. Safe to call more than once."""
        if not self._is_open:
            self.load()
            self._is_open = True
        return self

    def close(self) -> None:
        """Detach listeners and release the backend."""
        self._listeners.clear()
        self.backend.close()
        self._is_open = False

    def __enter__(self) -> "DescriptorStore":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def add_listener(self, listener: StoreListener) -> None:
        """Register a callback invoked synchronously after every committed change."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: StoreListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def count(self) -> int:
        return len(self._faces)

    def __len__(self) -> int:
        return len(self._faces)

    def __contains__(self, label: object) -> bool:
        return label in self._faces

    def contains(self, label: str) -> bool:
        return label in self._faces

    def get(self, label: str) -> Optional[EnrolledFace]:
        return self._faces.get(label)

    def list_labels(self) -> List[str]:
        """Labels in enrollment order (re-enrolling keeps the original slot)."""
        return list(self._faces.keys())

    def faces(self) -> List[EnrolledFace]:
        return list(self._faces.values())

    @property
    def dimension(self) -> Optional[int]:
        """Descriptor dimension shared by all enrolled faces, or None when empty."""
        for face in self._faces.values():
            return face.dimension
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def enroll(self, label: str, descriptor) -> EnrolledFace:
        """
        Enroll (or overwrite) a face.

        Args:
            label: Non-empty identity name. Stored as given (case-sensitive).
            descriptor: Embedding vector. Must match the dimension of the
                        faces already enrolled (an overwrite of the only
                        enrolled face may change it).

        Returns:
            The stored EnrolledFace.

        Raises:
            InvalidInput: On empty label or invalid descriptor.
            PersistenceError: If the write failed (nothing changed).
        """
        label = validate_label(label)

        expected_dim = None
        others = [f for name, f in self._faces.items() if name != label]
        if others:
            expected_dim = others[0].dimension
        vec = validate_descriptor(descriptor, expected_dim)

        face = EnrolledFace(label=label, descriptor=vec.copy())
        previous = dict(self._faces)
        overwritten = label in self._faces
        self._faces[label] = face
        self._commit(previous)

        if overwritten:
            logger.info(f"Face re-enrolled (overwritten) for: {label}")
        else:
            logger.info(f"Face enrolled for: {label}")
        return face

    def remove(self, label: str) -> bool:
        """
        Remove an enrolled face.

        Returns:
            True if the label was removed, False if it was not enrolled
            (no write and no notification happen in that case).
        """
        if label not in self._faces:
            logger.debug(f"Cannot remove: '{label}' is not enrolled")
            return False

        previous = dict(self._faces)
        del self._faces[label]
        self._commit(previous)

        logger.info(f"Face removed for: {label}")
        return True

    def clear_all(self) -> None:
        """Remove every enrolled face."""
        previous = dict(self._faces)
        self._faces.clear()
        self._commit(previous)
        logger.info("All enrolled faces cleared")

    def _commit(self, previous: Dict[str, EnrolledFace]) -> None:
        try:
            self.save()
        except PersistenceError:
            self._faces = previous
            raise
        self._notify()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def serialize(self) -> str:
        """Serialize the enrolled set to JSON text."""
        data = {label: face.to_record() for label, face in self._faces.items()}
        return json.dumps(data)

    @staticmethod
    def deserialize(text: str) -> Dict[str, EnrolledFace]:
        """
        Parse JSON text into a label -> EnrolledFace mapping.

        Raises:
            PersistenceCorrupt: If the text or any record is malformed, or
                                descriptors disagree on dimension.
        """
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            raise PersistenceCorrupt(f"Stored faces are not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise PersistenceCorrupt("Stored faces are not a JSON object")

        faces: Dict[str, EnrolledFace] = {}
        dim = None
        for label, record in data.items():
            try:
                face = EnrolledFace.from_record(label, record)
            except (KeyError, TypeError, ValueError) as e:
                raise PersistenceCorrupt(f"Malformed record for '{label}': {e}") from e
            if not label.strip():
                raise PersistenceCorrupt("Stored record has an empty label")
            if dim is None:
                dim = face.dimension
            elif face.dimension != dim:
                raise PersistenceCorrupt(
                    f"Descriptor dimension mismatch for '{label}': {face.dimension} != {dim}"
                )
            faces[label] = face
        return faces

    def save(self) -> None:
        """
        Write the enrolled set to the backend.

        Raises:
            PersistenceError: If the backend write fails.
        """
        text = self.serialize()
        try:
            self.backend.set(self.namespace_key, text)
        except Exception as e:
            logger.error(f"Error saving enrolled faces: {e}")
            raise PersistenceError(f"Failed to save enrolled faces: {e}") from e

    def load(self) -> bool:
        """
        Replace the in-memory set with the persisted one.

        Corrupt or unreadable data never propagates: the store is reset to
        empty and a warning is logged.

        Returns:
            True if the persisted state was read (or nothing was stored),
            False if it was corrupt and the store was reset.
        """
        try:
            text = self.backend.get(self.namespace_key)
            faces = {} if text is None else self.deserialize(text)
        except PersistenceCorrupt as e:
            logger.warning(f"Error loading enrolled faces, starting empty: {e}")
            self._faces = {}
            self._notify()
            return False
        except Exception as e:
            logger.warning(f"Could not read enrolled faces, starting empty: {e}")
            self._faces = {}
            self._notify()
            return False

        self._faces = faces
        logger.info(f"Loaded {len(self._faces)} enrolled faces")
        self._notify()
        return True
