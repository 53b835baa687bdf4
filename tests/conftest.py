"""Shared fixtures: an in-memory application, its session and a test client."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from complaint_desk.app import create_app
from complaint_desk.config import QueryConfig, Settings
from complaint_desk.entities import Complaint, ComplaintEvidence


@pytest.fixture(name="settings")
def settings_fixture(tmp_path):
    return Settings(
        database_url="sqlite://",
        storage_dir=str(tmp_path / "storage"),
        log_level="DEBUG",
        bcrypt_rounds=4,
        query=QueryConfig(),
    )


@pytest.fixture(name="app")
def app_fixture(settings):
    app = create_app(settings)
    yield app
    app.state.engine.dispose()


@pytest.fixture(name="session")
def session_fixture(app):
    with Session(app.state.engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(app):
    return TestClient(app)


def _make_complaint(session: Session, evidences=(), **overrides) -> Complaint:
    data = {
        "reporter": "Budi Santoso",
        "reporter_identity_type": "KTP",
        "reporter_identity_number": "3201234567890123",
        "incident_title": "Broadcast interrupted",
        "incident_description": "The evening news broadcast was cut off twice.",
        "incident_time": datetime(2025, 7, 1, 19, 30),
    }
    data.update(overrides)
    complaint = Complaint(**data)
    session.add(complaint)
    session.commit()
    session.refresh(complaint)

    for index, file_type in enumerate(evidences):
        session.add(
            ComplaintEvidence(
                complaint_id=complaint.id,
                title=f"evidence-{index}",
                file_path=f"evidence/{complaint.id}_{index}.bin",
                file_type=file_type,
            )
        )
    if evidences:
        session.commit()
        session.refresh(complaint)
    return complaint


@pytest.fixture(name="make_complaint")
def make_complaint_fixture(session):
    """Insert a complaint and evidence rows with the given file types."""

    def make(evidences=(), **overrides) -> Complaint:
        return _make_complaint(session, evidences, **overrides)

    return make
