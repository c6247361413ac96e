from contextlib import contextmanager

import seed
from ragsync.ingestion.chunking import chunk_text, looks_structured
from ragsync.ingestion.models import SyncResult, SyncStatus


class StubService:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def sync_connector(self, connector_id):
        self.calls.append(connector_id)
        return self.result


class FakeStorage:
    def __init__(self, existing=()):
        self.connectors = list(existing)
        self.created = []
        self.updated = []

    def list_connectors(self, conn, *, active=None):
        return list(self.connectors)

    def create_connector(self, conn, payload):
        self.created.append(payload)
        return payload

    def update_connector(self, conn, connector_id, changes):
        self.updated.append((connector_id, changes))
        return next(c for c in self.connectors if c.id == connector_id)


@contextmanager
def _dummy_connect():
    yield object()


def _wire(monkeypatch, fake, stub):
    monkeypatch.setattr(seed, "wait_for_database", lambda: None)
    monkeypatch.setattr(seed.db, "connect", _dummy_connect)
    for name in ("list_connectors", "create_connector", "update_connector"):
        monkeypatch.setattr(seed.storage, name, getattr(fake, name))
    monkeypatch.setattr(seed._service, "get_service", lambda: stub)


def test_demo_text_chunks_one_section_per_project():
    text = seed.demo_text()

    chunks = chunk_text(text, looks_structured(text))

    assert [c.splitlines()[0] for c in chunks] == [
        f"## {title}" for title, _ in seed.DEMO_PROJECTS
    ]


def test_seed_updates_existing_connector_and_syncs(monkeypatch, make_connector):
    existing = make_connector("manual-text", {"text": "old demo text"}, id=4, name="Demo projects")
    fake = FakeStorage([existing])
    stub = StubService(
        SyncResult(connector_id=4, status=SyncStatus.SUCCESS, documents_count=4)
    )
    _wire(monkeypatch, fake, stub)

    assert seed.main([]) == 0

    assert fake.created == []
    connector_id, changes = fake.updated[0]
    assert connector_id == 4
    assert changes.config == {"text": seed.demo_text()}
    assert changes.is_active is True
    assert stub.calls == [4]


def test_seed_creates_connector_from_text_file(monkeypatch, make_connector, tmp_path):
    notes = tmp_path / "handbook.md"
    notes.write_text("## Deploys\nDeploys happen on Tuesdays.", encoding="utf-8")
    created = make_connector("manual-text", {"text": "x"}, id=9, name="Handbook")
    fake = FakeStorage()
    fake.create_connector = lambda conn, payload: fake.created.append(payload) or created
    stub = StubService(SyncResult(connector_id=9, status=SyncStatus.ERROR, error="boom"))
    _wire(monkeypatch, fake, stub)

    assert seed.main(["--name", "Handbook", "--text-file", str(notes)]) == 1

    payload = fake.created[0]
    assert payload.name == "Handbook"
    assert payload.source_kind.value == "manual-text"
    assert payload.config == {"text": "## Deploys\nDeploys happen on Tuesdays."}
    assert stub.calls == [9]


def test_seed_without_sync(monkeypatch, make_connector):
    existing = make_connector("manual-text", {"text": "old"}, id=2, name="Demo projects")
    fake = FakeStorage([existing])
    stub = StubService(None)
    _wire(monkeypatch, fake, stub)

    assert seed.main(["--no-sync"]) == 0
    assert stub.calls == []
