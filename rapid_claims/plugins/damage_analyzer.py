"""Damage assessment gateway backed by AWS Bedrock multimodal models."""

import base64
import binascii
import json
import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any, Dict

from ..models.report import DamageIntensity, DamageReport
from ..utils.bedrock_client import BedrockClient
from ..utils.errors import AnalysisError, handle_analysis_error

logger = logging.getLogger(__name__)


IMAGE_FORMATS = {
    "image/jpeg": "jpeg",
    "image/jpg": "jpeg",
    "image/pjpeg": "jpeg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}

VIDEO_FORMATS = {
    "video/mp4": "mp4",
    "video/quicktime": "mov",
    "video/x-matroska": "mkv",
    "video/webm": "webm",
    "video/x-flv": "flv",
    "video/mpeg": "mpeg",
    "video/x-ms-wmv": "wmv",
    "video/3gpp": "three_gp",
}


class AnalysisGateway(ABC):
    """
    Contract of the external vision-analysis collaborator.

    One call, one outcome: either a DamageReport or an AnalysisError.
    Implementations never retry.
    """

    @abstractmethod
    async def analyze(self, encoded_evidence: str, media_type: str) -> DamageReport:
        """
        Assess the damage shown in one photo or video.

        Args:
            encoded_evidence: Base64 text of the evidence bytes
            media_type: MIME type tag of the evidence

        Returns:
            DamageReport satisfying the report contract

        Raises:
            AnalysisError: If no structured report could be produced
        """


class BedrockDamageAnalyzer(AnalysisGateway):
    """
    Vision gateway asking a Bedrock multimodal model for a structured damage report.

    Sends the evidence as an image or video content block together with a
    prompt describing the report shape, then validates the returned JSON.
    """

    def __init__(
        self,
        bedrock_client: BedrockClient,
        max_tokens: int = 2048,
        temperature: float = 0.0
    ):
        """
        Initialize the damage analyzer.

        Args:
            bedrock_client: Configured BedrockClient instance
            max_tokens: Token budget for the model answer
            temperature: Sampling temperature
        """
        self.bedrock = bedrock_client
        self.max_tokens = max_tokens
        self.temperature = temperature
        logger.info("Initialized BedrockDamageAnalyzer")

    async def analyze(self, encoded_evidence: str, media_type: str) -> DamageReport:
        try:
            start_time = time.time()
            evidence_bytes = self._decode(encoded_evidence)
            logger.info(f"Starting damage analysis: {media_type}, {len(evidence_bytes)} bytes")

            messages = [
                {
                    "role": "user",
                    "content": [
                        self._content_block(evidence_bytes, media_type),
                        {"text": self._build_analysis_prompt()}
                    ]
                }
            ]

            response = await self.bedrock.converse(
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )

            response_text = response.get("text", "")
            if not response_text.strip():
                raise AnalysisError.malformed_response("empty response")

            logger.debug(f"Response preview: {response_text[:200]}...")
            report = self._structure_report(self._parse_analysis_response(response_text), response_text)

            logger.info(
                f"Damage analysis complete in {time.time() - start_time:.3f}s: "
                f"intensity={report.intensity.value}, cost={report.estimated_cost}, "
                f"{len(report.identified_items)} items"
            )
            return report

        except Exception as e:
            handle_analysis_error(e, media_type, logger)

    def _decode(self, encoded_evidence: str) -> bytes:
        try:
            data = base64.b64decode(encoded_evidence, validate=True)
        except (binascii.Error, ValueError) as e:
            raise AnalysisError.unsuitable_content(f"evidence payload is not valid base64 ({e})")
        if not data:
            raise AnalysisError.unsuitable_content("evidence payload is empty")
        return data

    def _content_block(self, evidence_bytes: bytes, media_type: str) -> Dict[str, Any]:
        """
        Build the Converse content block for the evidence.

        boto3 expects raw bytes in the source; it handles the wire encoding.
        """
        media = media_type.lower()

        if media.startswith("video/"):
            video_format = VIDEO_FORMATS.get(media)
            if video_format is None:
                raise AnalysisError.unsuitable_content(f"unsupported video format '{media_type}'")
            return {"video": {"format": video_format, "source": {"bytes": evidence_bytes}}}

        image_format = IMAGE_FORMATS.get(media) or self._detect_image_format(evidence_bytes)
        return {"image": {"format": image_format, "source": {"bytes": evidence_bytes}}}

    def _detect_image_format(self, image_bytes: bytes) -> str:
        if image_bytes.startswith(b'\xff\xd8\xff'):
            return "jpeg"
        elif image_bytes.startswith(b'\x89PNG\r\n\x1a\n'):
            return "png"
        elif image_bytes.startswith(b'GIF87a') or image_bytes.startswith(b'GIF89a'):
            return "gif"
        elif image_bytes.startswith(b'RIFF') and b'WEBP' in image_bytes[:12]:
            return "webp"
        logger.warning("Unknown image format, defaulting to JPEG")
        return "jpeg"

    def _build_analysis_prompt(self) -> str:
        levels = ", ".join(f'"{level.value}"' for level in DamageIntensity)
        return f"""You are an insurance damage assessor. Examine this evidence and assess the visible property damage.

If the evidence does not clearly show assessable damage, answer exactly:
{{"damage_visible": false, "reason": "short explanation"}}

Otherwise return a JSON object with this structure:
{{
    "damage_visible": true,
    "intensity": one of {levels},
    "estimatedCost": estimated repair cost in USD as a number,
    "identifiedItems": ["damaged item", "..."],
    "summary": "one or two sentence description of the damage",
    "structuralIntegrityRisk": true or false
}}

Return ONLY the JSON object, no additional text."""

    def _parse_analysis_response(self, response_text: str) -> Dict[str, Any]:
        """
        Parse the model answer as JSON, tolerating markdown fences and prose.

        Raises:
            AnalysisError: If no JSON object can be recovered
        """
        text = response_text.strip()

        fenced = re.search(r'```(?:json)?\s*(.*?)```', text, re.DOTALL)
        if fenced:
            text = fenced.group(1).strip()

        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            start, end = text.find('{'), text.rfind('}')
            if start == -1 or end <= start:
                raise AnalysisError.malformed_response("no JSON object in response", response_text)
            try:
                data = json.loads(text[start:end + 1])
            except json.JSONDecodeError as e:
                raise AnalysisError.malformed_response(f"invalid JSON ({e})", response_text)

        if not isinstance(data, dict):
            raise AnalysisError.malformed_response("response is not a JSON object", response_text)
        return data

    def _structure_report(self, data: Dict[str, Any], response_text: str) -> DamageReport:
        """
        Validate the parsed answer against the report contract.

        Raises:
            AnalysisError: If damage is not visible or a field is out of contract
        """
        if data.get("damage_visible") is False:
            raise AnalysisError.unsuitable_content(data.get("reason") or "damage not visible")

        fields = dict(data)
        cost = fields.get("estimatedCost", fields.get("estimated_cost"))
        if isinstance(cost, str):
            try:
                fields["estimatedCost"] = float(cost.replace("$", "").replace(",", "").strip())
            except ValueError:
                raise AnalysisError.malformed_response(f"non-numeric estimatedCost {cost!r}", response_text)

        try:
            return DamageReport.from_dict(fields)
        except ValueError as e:
            raise AnalysisError.malformed_response(str(e), response_text)
