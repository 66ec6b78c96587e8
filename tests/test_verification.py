"""
Tests for the verification orchestrator and OCR field extraction.
"""

import pytest

from models.errors import NoFaceDetectedError, RemoteServiceError
from models.session import EncodedImage
from models.verification import (
    MSG_FACE_MISMATCH,
    MSG_GENERIC_FAILURE,
    MSG_NO_FACE,
    MSG_VERIFIED,
    NOT_FOUND,
)
from verification.orchestrator import VerificationOrchestrator
from verification.parsing import NO_DOB, NO_ID, NO_NAME, extract_fields
from conftest import FakeFaceMatcher, FakeTextReader

ID_CARD_TEXT = """GOVERNMENT OF INDIA
Name: RAVI KUMAR
DOB: 12/05/1990
1234 5678 9012
"""


class TestExtractFields:
    def test_all_fields(self):
        fields = extract_fields(ID_CARD_TEXT)

        assert fields == {"name": "RAVI KUMAR", "idNumber": "1234 5678 9012", "dob": "12/05/1990"}

    def test_missing_fields_get_placeholders(self):
        assert extract_fields("nothing useful here") == {
            "name": NO_NAME,
            "idNumber": NO_ID,
            "dob": NO_DOB,
        }

    def test_empty_text(self):
        assert extract_fields("")["idNumber"] == NO_ID

    def test_first_match_wins(self):
        fields = extract_fields("01/01/2000 then 02/02/2001")
        assert fields["dob"] == "01/01/2000"

    def test_id_number_needs_single_spaces(self):
        assert extract_fields("1234-5678-9012")["idNumber"] == NO_ID

    def test_id_number_after_dob_line(self):
        fields = extract_fields("DOB: 12/05/1990\n1234 5678 9012")

        assert fields["idNumber"] == "1234 5678 9012"
        assert fields["dob"] == "12/05/1990"

    def test_id_number_does_not_span_lines(self):
        assert extract_fields("1234\n5678\n9012")["idNumber"] == NO_ID

    def test_id_number_not_cut_from_longer_digit_run(self):
        assert extract_fields("91234 5678 9012")["idNumber"] == NO_ID
        assert extract_fields("VID 1234 5678 9012 3456")["idNumber"] == NO_ID


class TestVerificationOrchestrator:
    def test_verified_end_to_end(self, face_image, id_image):
        matcher = FakeFaceMatcher(92.3)
        reader = FakeTextReader("Name: A\nDOB: 12/05/1990\n")
        orchestrator = VerificationOrchestrator(matcher, reader)

        result = orchestrator.verify(face_image, id_image)

        assert result.verified is True
        assert result.face_match_score == 92.3
        assert result.extracted_fields["dob"] == "12/05/1990"
        assert result.extracted_fields["idNumber"] == NO_ID
        assert result.message == MSG_VERIFIED
        assert matcher.calls == [(face_image, id_image)]
        assert reader.calls == [id_image]

    def test_threshold_is_exclusive(self, face_image, id_image):
        at = VerificationOrchestrator(FakeFaceMatcher(80.0), FakeTextReader()).verify(face_image, id_image)
        above = VerificationOrchestrator(FakeFaceMatcher(80.01), FakeTextReader()).verify(face_image, id_image)

        assert at.verified is False
        assert at.message == MSG_FACE_MISMATCH
        assert above.verified is True

    def test_decision_uses_raw_score(self, face_image, id_image):
        result = VerificationOrchestrator(FakeFaceMatcher(80.004), FakeTextReader()).verify(face_image, id_image)

        assert result.verified is True
        assert result.message == MSG_VERIFIED
        assert result.face_match_score == 80.0

    def test_reported_score_rounded(self, face_image, id_image):
        result = VerificationOrchestrator(FakeFaceMatcher(92.3456), FakeTextReader()).verify(face_image, id_image)

        assert result.face_match_score == 92.35

    def test_no_face_short_circuits(self, face_image, id_image):
        reader = FakeTextReader(ID_CARD_TEXT)
        orchestrator = VerificationOrchestrator(
            FakeFaceMatcher(error=NoFaceDetectedError("no face")), reader
        )

        result = orchestrator.verify(face_image, id_image)

        assert result.verified is False
        assert result.face_match_score == 0.0
        assert result.message == MSG_NO_FACE
        assert dict(result.extracted_fields) == {"name": NOT_FOUND, "idNumber": NOT_FOUND, "dob": NOT_FOUND}
        assert reader.calls == []

    def test_face_service_failure_degrades_to_zero(self, face_image, id_image):
        orchestrator = VerificationOrchestrator(
            FakeFaceMatcher(error=RemoteServiceError("timeout")), FakeTextReader(ID_CARD_TEXT)
        )

        result = orchestrator.verify(face_image, id_image)

        assert result.verified is False
        assert result.face_match_score == 0.0
        assert result.message == MSG_FACE_MISMATCH
        assert result.extracted_fields["idNumber"] == "1234 5678 9012"

    def test_text_failure_keeps_not_found(self, face_image, id_image):
        orchestrator = VerificationOrchestrator(
            FakeFaceMatcher(95.0), FakeTextReader(error=RemoteServiceError("ocr down"))
        )

        result = orchestrator.verify(face_image, id_image)

        assert result.verified is True
        assert result.extracted_fields["name"] == NOT_FOUND

    @pytest.mark.parametrize("which", ["face", "id"])
    def test_empty_buffer_makes_no_remote_calls(self, face_image, id_image, which):
        matcher = FakeFaceMatcher(99.0)
        reader = FakeTextReader(ID_CARD_TEXT)
        empty = EncodedImage(data=b"")
        args = (empty, id_image) if which == "face" else (face_image, empty)

        result = VerificationOrchestrator(matcher, reader).verify(*args)

        assert result.verified is False
        assert result.message == MSG_GENERIC_FAILURE
        assert matcher.calls == []
        assert reader.calls == []

    def test_missing_image(self, face_image):
        result = VerificationOrchestrator(FakeFaceMatcher(), FakeTextReader()).verify(face_image, None)

        assert result.message == MSG_GENERIC_FAILURE

    def test_custom_threshold(self, face_image, id_image):
        orchestrator = VerificationOrchestrator(FakeFaceMatcher(75.0), FakeTextReader(), match_threshold=70)

        assert orchestrator.verify(face_image, id_image).verified is True
