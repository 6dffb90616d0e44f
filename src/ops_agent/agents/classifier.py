"""
Problem Classifier

Turns a free-text incident report into a ProblemAnalysis with one
schema-constrained model call. Unlike the other model-backed stages this one
never degrades: without a valid analysis there is nothing to route, so empty
or malformed output raises and the orchestration engine reports the failure.
"""

import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from ..errors import ClassificationEmpty, ClassificationMalformed
from ..llm import LLMProvider, Message, ModelRole, ResponseSchema, decode_json
from ..models import ExecutionChannel, ProblemAnalysis

logger = logging.getLogger(__name__)


ANALYSIS_SCHEMA = ResponseSchema(
    name="problem_analysis",
    json_schema={
        "type": "object",
        "properties": {
            "category": {"type": "string"},
            "subcategory": {"type": "string"},
            "severity": {"type": "string", "enum": ["low", "medium", "high", "critical"]},
            "affectedSystems": {"type": "array", "items": {"type": "string"}},
            "requiredActions": {"type": "array", "items": {"type": "string"}},
            "suggestedMethod": {
                "type": "string",
                "enum": [channel.value for channel in ExecutionChannel],
            },
            "confidence": {"type": "number", "minimum": 0, "maximum": 1},
            "reasoning": {"type": "string"},
        },
        "required": [
            "category",
            "subcategory",
            "severity",
            "affectedSystems",
            "requiredActions",
            "suggestedMethod",
            "confidence",
            "reasoning",
        ],
        "additionalProperties": False,
    },
)

SYSTEM_PROMPT = """You are an industrial operations assistant for manufacturing \
plants. You analyse problem reports about MES, SCADA, ERP and OA systems and \
decide how they should be resolved.

Execution methods:
- api: the system exposes a structured API (preferred when available)
- mcp: an external tool server can perform the operation
- rpa: no structured access exists; the problem must be solved through the GUI

Choose the method that fits the available resources. Report your confidence
in the classification as a number between 0 and 1."""


class ProblemClassifier:
    """
    Classifier adapter around the language-model collaborator.

    Usage:
        >>> classifier = ProblemClassifier(llm)
        >>> analysis = await classifier.classify("Line 3 PLC stopped reporting counts")
        >>> analysis.suggested_method
        <ExecutionChannel.API: 'api'>
    """

    def __init__(self, llm: LLMProvider):
        self.llm = llm

    def build_messages(self, problem: str, resources: Optional[dict[str, Any]] = None) -> list[Message]:
        system = SYSTEM_PROMPT
        if resources:
            system += "\n\nAvailable resources:\n" + json.dumps(resources, ensure_ascii=False, indent=2)
        return [
            Message(role="system", content=system),
            Message(role="user", content=problem),
        ]

    async def classify(self, problem: str, resources: Optional[dict[str, Any]] = None) -> ProblemAnalysis:
        """
        Classify a problem report.

        Args:
            problem: Incident description (must not be blank)
            resources: Inventory of connectors, tool servers and RPA templates

        Returns:
            Validated ProblemAnalysis

        Raises:
            ValueError: Problem text is blank
            ClassificationEmpty: The model returned no content
            ClassificationMalformed: Content is not JSON or fails validation
        """
        if not problem or not problem.strip():
            raise ValueError("Problem report must not be empty")

        response = await self.llm.complete(
            self.build_messages(problem, resources),
            role=ModelRole.REASONING,
            response_schema=ANALYSIS_SCHEMA,
        )

        try:
            data = decode_json(response.content)
        except ValueError as e:
            raise ClassificationMalformed(f"Classification is not valid JSON: {e}") from e

        if data is None:
            raise ClassificationEmpty("Model returned no classification content")

        try:
            analysis = ProblemAnalysis.model_validate(data)
        except ValidationError as e:
            raise ClassificationMalformed(
                f"Classification does not match the analysis schema: {e.error_count()} error(s)"
            ) from e

        logger.info(
            "Classified as %s/%s (severity=%s, method=%s, confidence=%.2f)",
            analysis.category,
            analysis.subcategory,
            analysis.severity,
            analysis.suggested_method.value,
            analysis.confidence,
        )
        return analysis
