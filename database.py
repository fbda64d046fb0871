"""
JSON document store

All state lives in one JSON file with four collections: users, items, carts
(keyed by user id) and orders. Every mutation rewrites the whole document.
Transactions are serialized with a lock so concurrent requests cannot
overwrite each other's changes.
"""

import json
import logging
import os
import tempfile
import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from errors import StorageFailure

logger = logging.getLogger(__name__)

DATA_FILE = os.getenv("DATA_FILE", os.path.join(os.path.dirname(os.path.abspath(__file__)), "data.json"))

COLLECTIONS = {
    "users": list,
    "items": list,
    "carts": dict,
    "orders": list,
}


def empty_document() -> Dict[str, Any]:
    return {name: factory() for name, factory in COLLECTIONS.items()}


class JsonDocumentStore:
    def __init__(self, path: str):
        self.path = path
        self._lock = threading.RLock()

    def _read(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            logger.info("Data file %s not found, creating it", self.path)
            data = empty_document()
            self._write(data)
            return data
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Data file %s is malformed (%s), resetting it", self.path, e)
            data = empty_document()
            self._write(data)
            return data
        except OSError as e:
            logger.exception("Failed to read data file %s", self.path)
            raise StorageFailure(f"Failed to read data file: {e}")

        if not isinstance(data, dict):
            logger.warning("Data file %s does not hold an object, resetting it", self.path)
            data = empty_document()
            self._write(data)
            return data

        for name, factory in COLLECTIONS.items():
            if not isinstance(data.get(name), factory):
                data[name] = factory()
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".data-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.exception("Failed to write data file %s", self.path)
            raise StorageFailure(f"Failed to write data file: {e}")

    def load(self) -> Dict[str, Any]:
        """Return a fresh copy of the whole document."""
        with self._lock:
            return self._read()

    def save(self, data: Dict[str, Any]) -> None:
        with self._lock:
            self._write(data)

    @contextmanager
    def transaction(self):
        """Load the document, hand it to the caller and write it back.

        The write only happens when the block exits cleanly, so an error raised
        halfway through a multi-step change leaves the file untouched.
        """
        with self._lock:
            data = self._read()
            yield data
            self._write(data)

    def stats(self) -> Dict[str, int]:
        data = self.load()
        return {name: len(data[name]) for name in COLLECTIONS}


db = JsonDocumentStore(DATA_FILE)


def get_db() -> JsonDocumentStore:
    return db


# Document helpers

def new_id(documents: List[Dict[str, Any]]) -> str:
    """Millisecond timestamp id, bumped until unique in `documents`."""
    taken = {d.get("id") for d in documents}
    candidate = int(time.time() * 1000)
    while str(candidate) in taken:
        candidate += 1
    return str(candidate)


def create_document(data: Dict[str, Any], collection_name: str, doc: Dict[str, Any]) -> Dict[str, Any]:
    documents = data[collection_name]
    record = {"id": new_id(documents), **{k: v for k, v in doc.items() if k != "id"}}
    documents.append(record)
    return record


def get_documents(data: Dict[str, Any], collection_name: str, filter_dict: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    documents = data[collection_name]
    if not filter_dict:
        return list(documents)
    return [d for d in documents if all(d.get(k) == v for k, v in filter_dict.items())]


def find_index(documents: List[Dict[str, Any]], **match) -> int:
    for i, d in enumerate(documents):
        if all(d.get(k) == v for k, v in match.items()):
            return i
    return -1
