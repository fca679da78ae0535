from abc import ABC, abstractmethod
from pathlib import Path


class EvidenceStorage(ABC):
    """Stores uploaded payment receipts; references are opaque strings."""

    @abstractmethod
    def save_receipt(self, payment_id: str, filename: str, content: bytes) -> str:
        """Persist a receipt; returns the reference to keep on the payment row."""
        raise NotImplementedError

    @abstractmethod
    def release(self, ref: str) -> None:
        """Drop a superseded reference. Must tolerate already-missing artifacts."""
        raise NotImplementedError

    @abstractmethod
    def resolve(self, ref: str) -> Path | None:
        raise NotImplementedError
