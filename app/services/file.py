from pathlib import Path
from typing import BinaryIO
import unicodedata
import shutil
import uuid
import re
import os

def sanitize_filename(filename: str, max_length: int = 100) -> str:
    """
    Sanitize filename to be safe across different operating systems.
    Removes invalid characters, normalizes unicode, and limits length.
    """
    if not filename:
        return "download"

    # Normalize unicode characters (ø, å and friends lose their accents)
    filename = unicodedata.normalize('NFKD', filename)
    filename = filename.encode('ascii', 'ignore').decode('ascii')

    # Invalid chars: < > : " | ? * \ / and control characters
    filename = re.sub(r'[<>:"|?*\\/\x00-\x1f\x7f]', '_', filename)

    # Remove leading/trailing spaces and dots (Windows issue)
    filename = filename.strip('. ')
    filename = re.sub(r'[_\s]+', '_', filename)
    filename = re.sub(r'^[._-]+', '', filename)
    filename = re.sub(r'\.\.+', '.', filename)

    # Limit length while preserving extension
    if len(filename) > max_length:
        name_part, ext_part = os.path.splitext(filename)
        max_name_length = max_length - len(ext_part)
        if max_name_length > 0:
            filename = name_part[:max_name_length] + ext_part
        else:
            filename = filename[:max_length]

    filename = filename.rstrip('. ')

    if not filename or filename in ['', '.', '_']:
        return "download"

    return filename

class LocalFileStorage:
    """Stores uploaded documents below ``upload_dir`` as ``<user_id>/<uuid>.<ext>``"""

    def __init__(self, upload_dir: Path):
        self.upload_dir = Path(upload_dir)

    def save(self, user_id: str, original_filename: str, fileobj: BinaryIO) -> str:
        file_extension = original_filename.rsplit('.', 1)[-1].lower() if '.' in original_filename else 'bin'
        file_path = f"{user_id}/{uuid.uuid4()}.{file_extension}"

        target = self.resolve(file_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "wb") as buffer:
            shutil.copyfileobj(fileobj, buffer)
        return file_path

    def resolve(self, file_path: str) -> Path:
        root = self.upload_dir.resolve()
        target = (root / file_path).resolve()
        if root not in target.parents:
            raise ValueError(f"Path escapes upload directory: {file_path}")
        return target

    def delete(self, file_path: str):
        target = self.resolve(file_path)
        if target.exists():
            target.unlink()
