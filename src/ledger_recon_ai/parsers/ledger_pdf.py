"""
Ledger PDF loader.
Reads a party's ledger from disk into a LedgerDocument.
"""

from pathlib import Path
import logging

from ..config import ReconConfig
from ..models.ledger import LedgerDocument
from ..utils.exceptions import LedgerLoadError

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"


class LedgerPDFLoader:
    """Loads and sanity-checks ledger PDFs before they are sent to the model."""

    def __init__(self, config: ReconConfig):
        self.config = config
        self.max_bytes = config.documents.max_bytes

    def load(self, file_path: Path, label: str) -> LedgerDocument:
        """
        Read a PDF file into a LedgerDocument.

        Args:
            file_path: Path to the PDF
            label: Logical party label, e.g. "Party A"

        Returns:
            Loaded document

        Raises:
            LedgerLoadError: If the file is unreadable, too large or not a PDF
        """
        logger.info(f"Loading {label} ledger: {file_path}")

        try:
            content = file_path.read_bytes()
        except OSError as e:
            logger.error(f"Failed to read ledger file: {e}")
            raise LedgerLoadError(f"Failed to read ledger file {file_path}: {e}") from e

        return self.from_bytes(content, label=label, filename=file_path.name)

    def from_bytes(self, content: bytes, label: str, filename: str) -> LedgerDocument:
        if not content:
            raise LedgerLoadError(f"{label} ledger is empty: {filename}")
        if len(content) > self.max_bytes:
            raise LedgerLoadError(
                f"{label} ledger exceeds {self.max_bytes} bytes: {filename}"
            )
        if not content.lstrip().startswith(PDF_MAGIC):
            raise LedgerLoadError(f"{label} ledger is not a PDF: {filename}")

        logger.debug(f"{label} ledger {filename}: {len(content)} bytes")
        return LedgerDocument(label=label, content=content, filename=filename)

    def load_pair(self, party_a: Path, party_b: Path) -> tuple[LedgerDocument, LedgerDocument]:
        """Load both ledgers using the configured party labels."""
        pipeline = self.config.pipeline
        return (
            self.load(party_a, pipeline.party_a_label),
            self.load(party_b, pipeline.party_b_label),
        )
