from pathlib import Path
from typing import Optional

from app.helpers.parsing import EXTENSIONS
from app.models.settings import StorageSettings
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

FILES_ROUTE = "/files"


class FileStorage:
    """Keeps uploaded originals on disk and issues the URLs they are served from"""

    def __init__(self, settings: Optional[StorageSettings] = None):
        self.settings = settings or StorageSettings()
        self.root = Path(self.settings.upload_dir)

    def ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def file_name(self, record_id: str, filename: str = "", mime_type: str = "") -> str:
        ext = Path(filename).suffix.lower() if filename else ""
        if not ext:
            ext = EXTENSIONS.get(mime_type, "")
        return f"{record_id}{ext}"

    def url_for(self, name: str) -> str:
        return f"{self.settings.file_base_url}{FILES_ROUTE}/{name}"

    def save(self, record_id: str, content: bytes, filename: str = "", mime_type: str = "") -> str:
        name = self.file_name(record_id, filename, mime_type)
        (self.ensure_root() / name).write_bytes(content)
        logger.debug(f"Stored {filename or name} as {name} ({len(content)} bytes)")
        return self.url_for(name)

    def remove(self, file_url: str) -> bool:
        if not file_url:
            return False
        name = file_url.rsplit("/", 1)[-1]
        path = self.root / name
        if path.exists():
            path.unlink()
            return True
        return False
