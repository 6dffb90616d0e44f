"""
Model Output Parsing Policy

Single home for the fail-open rule: model output that is missing or cannot be
decoded degrades to an empty result (or to a completion signal in the
perception-action loop) instead of raising. Setting degrade_on_malformed to
False turns every such degradation into MalformedModelOutput.

Missing content is always "nothing to report" and never raises here; callers
that cannot proceed without content (classification) check for it themselves.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from ..errors import MalformedModelOutput

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


@dataclass(frozen=True)
class ParsePolicy:
    """How to treat model output that fails structural parsing."""

    degrade_on_malformed: bool = True

    def malformed(self, purpose: str, content: Optional[str]) -> None:
        """
        Record a malformed response.

        Returns normally when degrading (the caller then substitutes its empty
        value); raises MalformedModelOutput when fail-closed.
        """
        if not self.degrade_on_malformed:
            raise MalformedModelOutput(purpose, content)
        logger.warning(
            "Degrading malformed model output for %s: %r",
            purpose,
            (content or "")[:200],
        )


FAIL_OPEN = ParsePolicy(degrade_on_malformed=True)
FAIL_CLOSED = ParsePolicy(degrade_on_malformed=False)


def strip_code_fence(content: str) -> str:
    """Remove a surrounding ```json fence some models add despite instructions."""
    text = content.strip()
    match = _FENCE_RE.match(text)
    return match.group(1) if match else text


def decode_json(content: Optional[str]) -> Any:
    """
    Decode JSON content.

    Returns:
        The decoded value, or None when content is missing or blank

    Raises:
        ValueError: Content is present but not valid JSON
    """
    if content is None or not content.strip():
        return None
    return json.loads(strip_code_fence(content))


def parse_json_object(
    content: Optional[str],
    policy: ParsePolicy,
    purpose: str,
) -> Optional[dict[str, Any]]:
    """
    Decode content that should be a JSON object.

    Args:
        content: Raw model content (may be None)
        policy: Parse policy deciding whether malformed content raises
        purpose: Short label for logs and errors

    Returns:
        The decoded object, or None if content is missing or (when
        degrading) malformed
    """
    try:
        value = decode_json(content)
    except ValueError:
        policy.malformed(purpose, content)
        return None

    if value is None:
        return None

    if not isinstance(value, dict):
        policy.malformed(purpose, content)
        return None

    return value
