"""Tests for complaint numbering and evidence file type inference."""

from datetime import datetime

import pytest
from sqlmodel import select

from complaint_desk.entities import (
    DEFAULT_MIME_TYPE,
    Complaint,
    ComplaintEvidence,
    ComplaintPriority,
    ComplaintStatus,
    format_complaint_number,
    infer_file_type,
)


class TestComplaintNumber:
    def test_format_pads_to_four_digits(self):
        assert format_complaint_number(datetime(2025, 7, 16), 7) == "20250716-0007"

    def test_format_keeps_wide_ids(self):
        assert format_complaint_number(datetime(2025, 7, 16), 12345) == "20250716-12345"

    def test_assigned_on_insert(self, make_complaint):
        complaint = make_complaint(created_at=datetime(2025, 7, 16, 8, 0))
        assert complaint.complaint_number == f"20250716-{complaint.id:04d}"

    @pytest.mark.parametrize("complaint_id,expected", [(7, "20250716-0007"), (12345, "20250716-12345")])
    def test_assigned_from_explicit_id(self, make_complaint, complaint_id, expected):
        complaint = make_complaint(id=complaint_id, created_at=datetime(2025, 7, 16, 9, 30))
        assert complaint.complaint_number == expected

    def test_visible_without_refresh(self, session):
        complaint = Complaint(
            reporter="Ani",
            reporter_identity_type="KTP",
            reporter_identity_number="3201234567890123",
            incident_title="Signal lost",
            incident_description="No signal on the FM frequency all morning.",
            created_at=datetime(2025, 1, 2),
        )
        session.add(complaint)
        session.flush()
        assert complaint.complaint_number == f"20250102-{complaint.id:04d}"

    def test_persisted(self, session, make_complaint):
        complaint = make_complaint(created_at=datetime(2025, 7, 16))
        session.expire_all()
        stored = session.exec(select(Complaint.complaint_number)).one()
        assert stored == complaint.complaint_number

    def test_existing_number_kept(self, make_complaint):
        complaint = make_complaint(complaint_number="MANUAL-1")
        assert complaint.complaint_number == "MANUAL-1"

    def test_defaults(self, make_complaint):
        complaint = make_complaint()
        assert complaint.status == ComplaintStatus.PENDING
        assert complaint.priority == ComplaintPriority.MEDIUM


class TestFileTypeInference:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("evidence/photo.jpg", "image/jpeg"),
            ("evidence/scan.PDF", "application/pdf"),
            ("clip.mp4", "video/mp4"),
            ("archive.tar.7z", "application/x-7z-compressed"),
            ("noextension", DEFAULT_MIME_TYPE),
            ("unknown.xyz", DEFAULT_MIME_TYPE),
        ],
    )
    def test_infer(self, path, expected):
        assert infer_file_type(path) == expected

    def test_filled_on_insert(self, session, make_complaint):
        complaint = make_complaint()
        evidence = ComplaintEvidence(
            complaint_id=complaint.id, title="scan", file_path="evidence/scan.PDF"
        )
        session.add(evidence)
        session.commit()
        assert evidence.file_type == "application/pdf"

    def test_explicit_type_kept_on_insert(self, session, make_complaint):
        complaint = make_complaint(evidences=["image/heic"])
        session.expire_all()
        evidence = session.exec(select(ComplaintEvidence)).one()
        assert evidence.file_type == "image/heic"
        assert complaint.id == evidence.complaint_id

    def test_existing_type_kept_on_update(self, session, make_complaint):
        make_complaint(evidences=["image/png"])
        evidence = session.exec(select(ComplaintEvidence)).one()
        evidence.file_path = "evidence/replaced.pdf"
        session.add(evidence)
        session.commit()
        assert evidence.file_type == "image/png"

    def test_cleared_type_inferred_on_update(self, session, make_complaint):
        make_complaint(evidences=["image/png"])
        evidence = session.exec(select(ComplaintEvidence)).one()
        evidence.file_type = None
        evidence.file_path = "evidence/replaced.mp4"
        session.add(evidence)
        session.commit()
        assert evidence.file_type == "video/mp4"


class TestCascade:
    def test_deleting_complaint_deletes_evidences(self, session, make_complaint):
        complaint = make_complaint(evidences=["image/png", "application/pdf"])
        session.delete(complaint)
        session.commit()
        assert session.exec(select(ComplaintEvidence)).all() == []


class TestIncidentTime:
    def test_naive_value_stored_unchanged(self, session, make_complaint):
        make_complaint(incident_time=datetime(2025, 7, 1, 19, 30))
        session.expire_all()
        stored = session.exec(select(Complaint.incident_time)).one()
        assert stored == datetime(2025, 7, 1, 19, 30)
        assert stored.tzinfo is None

    def test_optional(self, make_complaint):
        assert make_complaint(incident_time=None).incident_time is None
