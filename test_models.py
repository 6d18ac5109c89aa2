"""Tests for evidence, report, handshake and claim models plus the transcript."""

import base64

import pytest

from conftest import PNG_BYTES, make_report
from rapid_claims.models.claim import ClaimResult, ClaimStatus
from rapid_claims.models.evidence import Evidence
from rapid_claims.models.handshake import AgentRole, HandshakeLog, MessageStatus, ProtocolTag
from rapid_claims.models.report import DamageIntensity, DamageReport
from rapid_claims.orchestration.transcript import Transcript
from rapid_claims.utils.errors import ErrorType, IngestionError, ProtocolInvariantViolation


def _entry(sender, recipient, status, protocol=ProtocolTag.NEGOTIATION, method="PROPOSE_CLAIM"):
    return HandshakeLog(
        sender=sender,
        recipient=recipient,
        protocol=protocol,
        status=status,
        payload={"method": method},
    )


class TestDamageIntensity:

    def test_scale_is_ordered(self):
        assert DamageIntensity.LOW < DamageIntensity.MODERATE < DamageIntensity.SEVERE < DamageIntensity.CATASTROPHIC
        assert max(DamageIntensity) is DamageIntensity.CATASTROPHIC
        assert sorted([DamageIntensity.SEVERE, DamageIntensity.LOW]) == [DamageIntensity.LOW, DamageIntensity.SEVERE]

    def test_parse_is_case_insensitive(self):
        assert DamageIntensity.parse("severe") is DamageIntensity.SEVERE
        assert DamageIntensity.parse(" Catastrophic ") is DamageIntensity.CATASTROPHIC

    def test_parse_rejects_unknown_levels(self):
        with pytest.raises(ValueError):
            DamageIntensity.parse("Apocalyptic")


class TestDamageReport:

    def test_from_camel_case_mapping(self):
        report = DamageReport.from_dict({
            "intensity": "Moderate",
            "estimatedCost": 3200,
            "identifiedItems": ["sofa", "rug"],
            "summary": "Flood damage in the living room.",
            "structuralIntegrityRisk": False,
        })

        assert report.intensity is DamageIntensity.MODERATE
        assert report.identified_items == ("sofa", "rug")
        assert report.to_dict()["estimatedCost"] == 3200

    def test_empty_item_list_is_allowed(self):
        assert make_report(items=()).identified_items == ()

    @pytest.mark.parametrize("cost", [-1, "3200", True, None, float("nan"), float("inf"), float("-inf")])
    def test_rejects_invalid_cost(self, cost):
        with pytest.raises(ValueError):
            make_report(cost=cost)

    def test_rejects_blank_summary(self):
        with pytest.raises(ValueError):
            make_report(summary="   ")

    def test_missing_field_is_rejected(self):
        with pytest.raises(ValueError, match="summary"):
            DamageReport.from_dict({"intensity": "Low", "estimatedCost": 10})

    def test_report_is_immutable(self):
        report = make_report()
        with pytest.raises(AttributeError):
            report.estimated_cost = 1


class TestClaimResult:

    def test_finalize_approved(self):
        report = make_report()
        result = ClaimResult.finalize(report, approved=True)
        assert result.status is ClaimStatus.APPROVED
        assert result.payment_initiated is True
        assert result.report is report

    def test_payment_flag_must_match_status(self):
        with pytest.raises(ValueError):
            ClaimResult(
                status=ClaimStatus.MANUAL_REVIEW,
                payment_initiated=True,
                reference_id="CLM-X",
                report=make_report(),
            )


class TestEvidence:

    def test_from_upload_normalises_media_type(self):
        evidence = Evidence.from_upload("clip.MP4", "Video/MP4", b"\x00\x01")
        assert evidence.media_type == "video/mp4"
        assert evidence.is_video

    def test_encoding_and_preview(self):
        evidence = Evidence.from_upload("roof.png", "image/png", PNG_BYTES)
        assert base64.b64decode(evidence.encode()) == PNG_BYTES
        assert evidence.data_url().startswith("data:image/png;base64,")
        assert evidence.describe() == {"filename": "roof.png", "media_type": "image/png", "size": len(PNG_BYTES)}

    def test_missing_upload(self):
        with pytest.raises(IngestionError) as exc_info:
            Evidence.from_upload(None, None, None)
        assert exc_info.value.error_type is ErrorType.INGESTION_MISSING

    def test_empty_upload(self):
        with pytest.raises(IngestionError) as exc_info:
            Evidence.from_upload("blank.jpg", "image/jpeg", b"")
        assert exc_info.value.error_type is ErrorType.EMPTY_EVIDENCE

    @pytest.mark.parametrize("media_type", ["application/pdf", "text/plain", "", "image"])
    def test_rejects_non_image_or_video(self, media_type):
        with pytest.raises(IngestionError) as exc_info:
            Evidence.from_upload("claim.bin", media_type, b"data")
        assert exc_info.value.error_type is ErrorType.UNSUPPORTED_MEDIA_TYPE


class TestTranscript:

    def test_processed_requires_prior_send_from_counterpart(self):
        transcript = Transcript()
        with pytest.raises(ProtocolInvariantViolation):
            transcript.append(_entry(AgentRole.POLICY_AGENT, AgentRole.REQUESTING_AGENT, MessageStatus.PROCESSED))
        assert len(transcript) == 0

    def test_processed_after_own_send_is_rejected(self):
        transcript = Transcript()
        transcript.append(_entry(AgentRole.POLICY_AGENT, AgentRole.REQUESTING_AGENT, MessageStatus.SENT))
        with pytest.raises(ProtocolInvariantViolation) as exc_info:
            transcript.append(_entry(AgentRole.POLICY_AGENT, AgentRole.REQUESTING_AGENT, MessageStatus.PROCESSED))
        assert exc_info.value.error_type is ErrorType.PROTOCOL_ORDER_VIOLATION

    def test_display_numbers_entries_in_order(self):
        transcript = Transcript(session_id=7)
        transcript.append(_entry(AgentRole.REQUESTING_AGENT, AgentRole.POLICY_AGENT, MessageStatus.SENT))
        transcript.append(_entry(
            AgentRole.POLICY_AGENT, AgentRole.REQUESTING_AGENT, MessageStatus.PROCESSED, method="EVALUATE_POLICY"
        ))
        transcript.append(_entry(
            AgentRole.POLICY_AGENT, AgentRole.POLICY_AGENT, MessageStatus.SENT,
            protocol=ProtocolTag.PAYMENT, method="INITIATE_PAYMENT"
        ))

        display = transcript.format_for_display()
        assert [row["sequence"] for row in display] == [1, 2, 3]
        assert display[1]["from"] == "PolicyAgent"
        assert display[2]["protocol"] == "payment-protocol"
        assert transcript.has_payment_message()
        assert transcript.export_to_dict()["total_entries"] == 3
        assert transcript.get_latest_entry().method == "INITIATE_PAYMENT"


class TestEvidenceConstruction:

    def test_direct_construction_rejects_non_media(self):
        with pytest.raises(IngestionError) as exc_info:
            Evidence(filename="policy.pdf", media_type="application/pdf", data=b"%PDF-1.7")
        assert exc_info.value.error_type is ErrorType.UNSUPPORTED_MEDIA_TYPE

    def test_direct_construction_rejects_empty_payload(self):
        with pytest.raises(IngestionError) as exc_info:
            Evidence(filename="blank.png", media_type="image/png", data=b"")
        assert exc_info.value.error_type is ErrorType.EMPTY_EVIDENCE

    def test_direct_construction_normalises_media_type(self):
        assert Evidence(filename="a.png", media_type=" IMAGE/PNG ", data=PNG_BYTES).media_type == "image/png"
