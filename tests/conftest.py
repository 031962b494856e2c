"""Pytest configuration and fixtures."""

from typing import Optional

import pytest

from ledger_recon_ai.config import ReconConfig, ReconContext
from ledger_recon_ai.llm.backend import GenerationBackend
from ledger_recon_ai.models.ledger import LedgerDocument, ReconciliationResult


class FakeBackend(GenerationBackend):
    """In-memory generation backend replaying scripted chunks and replies."""

    def __init__(
        self,
        chunks=(),
        replies=(),
        error: Optional[BaseException] = None,
        fail_after: int = 0,
    ):
        self.chunks = list(chunks)
        self.replies = list(replies)
        self.error = error
        self.fail_after = fail_after
        self.prompts: list[str] = []
        self.documents: list[LedgerDocument] = []
        self.closed = False

    async def stream(self, prompt, documents):
        self.prompts.append(prompt)
        self.documents = list(documents)
        try:
            for i, chunk in enumerate(self.chunks):
                if self.error is not None and i == self.fail_after:
                    raise self.error
                yield chunk
            if self.error is not None and self.fail_after >= len(self.chunks):
                raise self.error
        finally:
            self.closed = True

    async def complete(self, prompt):
        self.prompts.append(prompt)
        return self.replies.pop(0)


@pytest.fixture
def fake_backend():
    """Factory for scripted generation backends."""
    return FakeBackend


@pytest.fixture
def recon_config():
    return ReconConfig()


@pytest.fixture
def context(recon_config):
    return ReconContext(config=recon_config, api_key="test-key")


@pytest.fixture
def party_a():
    return LedgerDocument(label="Party A", content=b"%PDF-1.4 party a", filename="a.pdf")


@pytest.fixture
def party_b():
    return LedgerDocument(label="Party B", content=b"%PDF-1.4 party b", filename="b.pdf")


@pytest.fixture
def result_payload():
    """Wire-shaped reconciliation result."""
    return {
        "summary": "1 match, 2 discrepancies",
        "matches": [
            {"date": "2024-01-01", "description": "Invoice 1", "amount": 500},
        ],
        "partyADiscrepancies": [
            {"date": "2024-01-05", "description": "Credit note 7", "amount": -120.5},
        ],
        "partyBDiscrepancies": [
            {"date": "2024-01-09", "description": "Invoice 3", "amount": 75.25},
        ],
    }


@pytest.fixture
def sample_result(result_payload):
    return ReconciliationResult.model_validate(result_payload)
