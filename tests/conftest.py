import asyncio
import copy
import time
import pytest

from bithab.db import DocumentStore, JsonFileDocumentStore
from bithab.errors import DocumentStoreError


class RecordingDocumentStore(DocumentStore):
    """Keeps documents in memory and records every write, optionally slowly or failing."""

    def __init__(self, delay: float = 0.0):
        self.documents: dict[str, dict] = {}
        self.writes: list[dict] = []
        self.delay = delay
        self.fail_writes = False
        self.fail_reads = False
        self.reads = 0

    def get(self, key):
        self.reads += 1
        if self.fail_reads:
            raise DocumentStoreError("read timed out")
        document = self.documents.get(key)
        return copy.deepcopy(document) if document is not None else None

    def set(self, key, document):
        if self.delay:
            time.sleep(self.delay)
        if self.fail_writes:
            raise DocumentStoreError("write timed out")
        self.writes.append(copy.deepcopy(document))
        self.documents[key] = copy.deepcopy(document)


@pytest.fixture
def run():
    return asyncio.run


@pytest.fixture
def memory_documents():
    return RecordingDocumentStore()


@pytest.fixture
def json_documents(tmp_path):
    return JsonFileDocumentStore(tmp_path / "documents")
