"""
Receipts on the local filesystem under settings.receipt_upload_dir.
Reference = file name (receipt-<payment_id>-<random>.<ext>); never a caller-supplied path.
"""
import logging
import os
import secrets
from pathlib import Path

from tipster.core.config import settings
from tipster.core.errors import ValidationError
from tipster.storage.base import EvidenceStorage

logger = logging.getLogger(__name__)


class LocalEvidenceStorage(EvidenceStorage):
    def __init__(self, base_dir: str | None = None) -> None:
        self.base_dir = Path(base_dir or settings.receipt_upload_dir)

    def save_receipt(self, payment_id: str, filename: str, content: bytes) -> str:
        ext = os.path.splitext(filename or "")[1].lower()
        if ext not in settings.allowed_receipt_extensions_set:
            raise ValidationError("Receipt must be an image file", filename=filename)
        if not content:
            raise ValidationError("Receipt file is empty")
        if len(content) > settings.receipt_max_size_bytes:
            raise ValidationError(
                f"Receipt exceeds {settings.receipt_max_size_mb} MB",
                max_size_mb=settings.receipt_max_size_mb,
            )
        self.base_dir.mkdir(parents=True, exist_ok=True)
        ref = f"receipt-{payment_id}-{secrets.token_hex(8)}{ext}"
        path = self.base_dir / ref
        with path.open("wb") as f:
            f.write(content)
        return ref

    def release(self, ref: str) -> None:
        path = self.resolve(ref)
        if path is None:
            return
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            logger.warning("receipt_release_failed", extra={"error": f"{ref}: {e}"})

    def resolve(self, ref: str) -> Path | None:
        if not ref or os.path.basename(ref) != ref:
            return None
        return self.base_dir / ref
