"""
Local staging of multipart uploads. Files written here are owned by the
request that received them: every path either reaches remote storage (which
removes it) or is removed with cleanup_files.
"""
import logging
import uuid
from pathlib import Path

from fastapi import UploadFile

from vidtube.config import get_settings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MB


def cleanup_files(*paths: str | None) -> None:
    """Remove local temp files. Empty entries are skipped; failures are logged, never raised."""
    for path in paths:
        if not path:
            continue
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove temp file %s: %s", path, e)


class TempFileStore:
    def __init__(self, directory: Path):
        self.directory = Path(directory)

    async def save(self, upload: UploadFile | None) -> str | None:
        """Write one upload to disk and return its local path (None if nothing was sent)."""
        if upload is None or not upload.filename:
            return None
        self.directory.mkdir(parents=True, exist_ok=True)
        ext = Path(upload.filename).suffix
        if len(ext) > 10:
            ext = ""
        path = self.directory / f"{uuid.uuid4()}{ext.lower()}"
        try:
            with path.open("wb") as f:
                while chunk := await upload.read(CHUNK_SIZE):
                    f.write(chunk)
        except OSError:
            cleanup_files(str(path))
            raise
        return str(path)

    async def save_all(self, *uploads: UploadFile | None) -> list[str | None]:
        """Save several uploads; if one fails, the ones already written are removed."""
        saved: list[str | None] = []
        try:
            for upload in uploads:
                saved.append(await self.save(upload))
        except OSError:
            cleanup_files(*saved)
            raise
        return saved


def get_temp_store() -> TempFileStore:
    return TempFileStore(Path(get_settings().upload_temp_dir))
