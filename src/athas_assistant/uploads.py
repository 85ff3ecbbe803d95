"""Uploaded file storage and text extraction."""

import logging
import secrets
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pymupdf

from athas_assistant.exceptions import UploadError
from athas_assistant.models.conversation import FileAttachment

logger = logging.getLogger(__name__)

ALLOWED_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "text/plain",
    "text/markdown",
})

UPLOAD_SUBDIRS = ("images", "documents", "temp")


def _subdir_for(mimetype: str) -> str:
    if mimetype.startswith("image/"):
        return "images"
    if mimetype in ("application/pdf", "text/plain"):
        return "documents"
    return "temp"


def extract_text(path: Path, mimetype: str) -> str | None:
    """Extract readable text from a PDF or text file, None if unsupported."""
    if mimetype == "application/pdf":
        with pymupdf.open(str(path)) as doc:
            return "\n".join(page.get_text() for page in doc)
    if mimetype.startswith("text/"):
        return path.read_text(encoding="utf-8", errors="replace")
    return None


class UploadStore:
    """Stores uploads on disk under images/, documents/ and temp/."""

    def __init__(self, root: str | Path, max_bytes: int = 50 * 1024 * 1024) -> None:
        self.root = Path(root)
        self.max_bytes = max_bytes

    def ensure_dirs(self) -> None:
        for subdir in UPLOAD_SUBDIRS:
            (self.root / subdir).mkdir(parents=True, exist_ok=True)

    def save(self, original_name: str, mimetype: str, data: bytes) -> FileAttachment:
        """Validate and store one upload.

        Raises:
            UploadError: If the type is not allowed or the file is too large
        """
        if mimetype not in ALLOWED_TYPES:
            raise UploadError(
                "Invalid file type. Only images, PDFs, and text files are allowed."
            )
        if len(data) > self.max_bytes:
            raise UploadError(
                f"File exceeds the {self.max_bytes // (1024 * 1024)}MB limit",
                status_code=413,
            )

        self.ensure_dirs()
        suffix = Path(original_name).suffix
        filename = f"file-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{suffix}"
        path = self.root / _subdir_for(mimetype) / filename
        path.write_bytes(data)

        content: str | None = None
        try:
            content = extract_text(path, mimetype)
        except Exception as e:
            logger.error(f"Failed to extract text from {original_name}: {e}")

        attachment = FileAttachment(
            id=str(int(time.time() * 1000)),
            original_name=original_name,
            filename=filename,
            path=str(path),
            size=len(data),
            mimetype=mimetype,
            content=content,
            processed=content is not None,
        )
        logger.info(f"Stored upload {original_name} as {path}")
        return attachment

    def list_files(self) -> list[dict[str, Any]]:
        """All stored files, newest first."""
        files: list[dict[str, Any]] = []
        for subdir in UPLOAD_SUBDIRS:
            directory = self.root / subdir
            if not directory.is_dir():
                continue
            for path in directory.iterdir():
                if not path.is_file():
                    continue
                stat = path.stat()
                files.append({
                    "name": path.name,
                    "path": f"/uploads/{subdir}/{path.name}",
                    "size": stat.st_size,
                    "modified": datetime.fromtimestamp(stat.st_mtime, UTC),
                    "type": subdir,
                })
        files.sort(key=lambda f: f["modified"], reverse=True)
        return files

    def delete(self, filename: str) -> bool:
        """Delete a stored file by name.

        Returns:
            True if a file was found and deleted

        Raises:
            UploadError: If the filename tries to leave the upload directory
        """
        if not filename or Path(filename).name != filename or ".." in filename:
            raise UploadError("Invalid filename")

        root = self.root.resolve()
        for subdir in UPLOAD_SUBDIRS:
            path = (self.root / subdir / filename).resolve()
            if not path.is_relative_to(root):
                raise UploadError("Invalid file path")
            if path.is_file():
                path.unlink()
                logger.info(f"Deleted upload {filename}")
                return True
        return False
