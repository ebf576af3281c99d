"""Storage of uploaded media files.

Files land in a local directory served under /uploads. Deletion is
best-effort: a missing or undeletable file is logged, never raised, so
database cleanup is not held hostage by the filesystem.
"""

import abc
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

import aiofiles
import aiofiles.os

from vatofotsy_api.config import storage_settings
from vatofotsy_api.errors import InvalidFile
from vatofotsy_api.models import MediaType

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "video/mp4",
        "video/webm",
        "application/pdf",
    }
)

MEDIA_URL_PATH = "/uploads/poll-media"


@dataclass
class IncomingFile:
    """An uploaded file, already read into memory."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class StoredFile:
    file_name: str
    original_name: str
    mime_type: str
    size: int
    url: str
    media_type: MediaType


@dataclass
class FileValidation:
    valid: bool
    error: str | None = None


def media_type_for(mime_type: str) -> MediaType:
    if mime_type.startswith("image/"):
        return MediaType.IMAGE
    if mime_type.startswith("video/"):
        return MediaType.VIDEO
    return MediaType.DOCUMENT


class FileStorage(abc.ABC):
    """Where uploaded files go and how they are addressed."""

    def __init__(self, max_file_size: int = storage_settings.max_file_size) -> None:
        self.max_file_size = max_file_size

    def validate(self, file: IncomingFile) -> FileValidation:
        if file.size == 0:
            return FileValidation(False, f"File {file.filename} is empty")
        if file.size > self.max_file_size:
            limit_mb = self.max_file_size // (1024 * 1024)
            return FileValidation(
                False, f"File {file.filename} exceeds the {limit_mb}MB limit"
            )
        if file.content_type not in ALLOWED_MIME_TYPES:
            return FileValidation(
                False, f"File type {file.content_type} is not allowed"
            )
        return FileValidation(True)

    def validate_all(self, files: list[IncomingFile]) -> None:
        """Raise InvalidFile for the first file that fails validation."""
        for file in files:
            validation = self.validate(file)
            if not validation.valid:
                raise InvalidFile(validation.error)

    @abc.abstractmethod
    async def upload(self, file: IncomingFile) -> StoredFile:
        """Store a validated file under a new unique name."""

    @abc.abstractmethod
    async def delete(self, file_name: str) -> bool:
        """Delete a stored file by name or URL. Never raises.

        Returns:
            True if a file was removed
        """

    async def upload_many(self, files: list[IncomingFile]) -> list[StoredFile]:
        return [await self.upload(file) for file in files]

    async def delete_many(self, file_names: list[str]) -> None:
        for file_name in file_names:
            await self.delete(file_name)


class LocalFileStorage(FileStorage):
    """Stores files in a local directory."""

    def __init__(
        self,
        upload_dir: str | Path,
        base_url: str,
        max_file_size: int = storage_settings.max_file_size,
    ) -> None:
        super().__init__(max_file_size=max_file_size)
        self.upload_dir = Path(upload_dir)
        self.base_url = base_url.rstrip("/")

    @property
    def media_dir(self) -> Path:
        return self.upload_dir / "poll-media"

    def url_for(self, file_name: str) -> str:
        return f"{self.base_url}{MEDIA_URL_PATH}/{file_name}"

    @staticmethod
    def _extension(file: IncomingFile) -> str:
        suffix = Path(file.filename).suffix
        if suffix:
            return suffix.lower()
        return mimetypes.guess_extension(file.content_type) or ""

    async def upload(self, file: IncomingFile) -> StoredFile:
        file_name = f"{uuid4()}{self._extension(file)}"
        path = self.media_dir / file_name
        tmp_path = path.with_suffix(f".tmp-{uuid4().hex}")
        await aiofiles.os.makedirs(self.media_dir, exist_ok=True)
        try:
            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(file.data)
            await aiofiles.os.rename(tmp_path, path)
        finally:
            if await aiofiles.os.path.exists(tmp_path):
                await aiofiles.os.remove(tmp_path)

        logger.debug("Stored %s as %s", file.filename, file_name)
        return StoredFile(
            file_name=file_name,
            original_name=file.filename,
            mime_type=file.content_type,
            size=file.size,
            url=self.url_for(file_name),
            media_type=media_type_for(file.content_type),
        )

    async def delete(self, file_name: str) -> bool:
        # Accept a full URL as well as a bare name, never a path
        name = file_name.rsplit("/", 1)[-1]
        if not name or name in (".", ".."):
            return False
        path = self.media_dir / name
        try:
            if not await aiofiles.os.path.exists(path):
                logger.warning("File to delete does not exist: %s", name)
                return False
            await aiofiles.os.remove(path)
        except OSError as e:
            logger.error("Failed to delete file %s: %s", name, e)
            return False
        return True


# Global storage instance (created lazily)
_file_storage: FileStorage | None = None


def get_file_storage() -> FileStorage:
    """Get the global file storage instance."""
    global _file_storage
    if _file_storage is None:
        _file_storage = LocalFileStorage(
            upload_dir=storage_settings.upload_dir,
            base_url=storage_settings.base_url,
            max_file_size=storage_settings.max_file_size,
        )
    return _file_storage
