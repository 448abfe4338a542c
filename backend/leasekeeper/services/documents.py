# backend/leasekeeper/services/documents.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from ..config import settings
from ..errors import FileSystemError, ValidationError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedFile:
    """An upload already read off the wire: original name + raw bytes."""

    filename: str
    content: bytes


def _safe_name(filename: str) -> str:
    name = Path(filename or "upload").name.replace(" ", "_")
    return name or "upload"


class DocumentStore:
    """
    Stores lease / maintenance attachments under one root directory.

    Paths handed back (and stored on the entity rows) are relative to the root
    so the upload directory can move between deployments.
    """

    def __init__(self, root: Optional[str | Path] = None):
        self.root = Path(root if root is not None else settings.upload_dir)

    def check(self, files: Optional[Sequence[UploadedFile]]) -> None:
        limit = int(settings.max_files_per_request)
        if files and len(files) > limit:
            raise ValidationError(f"too many files: {len(files)} (limit {limit})")

    def save(self, files: Sequence[UploadedFile], *, folder: str) -> List[str]:
        self.check(files)

        target = self.root / folder
        stored: List[str] = []
        try:
            target.mkdir(parents=True, exist_ok=True)
            for f in files:
                rel = f"{folder}/{uuid.uuid4().hex}_{_safe_name(f.filename)}"
                (self.root / rel).write_bytes(f.content)
                stored.append(rel)
        except OSError as e:
            # leave nothing half-written behind
            self._discard(stored)
            raise FileSystemError(f"could not store {folder} document: {e}") from e

        return stored

    def remove(self, paths: Iterable[str]) -> None:
        """Unlink stored documents. A failure aborts immediately."""
        for rel in paths:
            try:
                (self.root / rel).unlink()
            except OSError as e:
                raise FileSystemError(f"could not remove document {rel}: {e}") from e

    def resolve(self, rel: str) -> Path:
        full = (self.root / rel).resolve()
        if self.root.resolve() not in full.parents or not full.is_file():
            raise FileSystemError(f"document not found: {rel}")
        return full

    def _discard(self, paths: Iterable[str]) -> None:
        for rel in paths:
            try:
                (self.root / rel).unlink(missing_ok=True)
            except OSError:
                log.warning("could not discard partial upload %s", rel)


def get_document_store() -> DocumentStore:
    return DocumentStore()
