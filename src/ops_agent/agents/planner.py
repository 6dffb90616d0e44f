"""
Plan Generator

Second model call of the pipeline: given the analysis and the channel it was
routed to, produce an ordered ExecutionPlan scoped to that channel (which
endpoint to call, which tool to run, or which GUI sub-goals to reach).

Malformed plan output degrades to a plan with zero steps under the fail-open
policy; structured executors then refuse it as EmptyPlan.
"""

import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from ..llm import FAIL_OPEN, LLMProvider, Message, ModelRole, ParsePolicy, ResponseSchema, parse_json_object
from ..models import ExecutionChannel, ExecutionPlan, PlanStep, ProblemAnalysis

logger = logging.getLogger(__name__)


PLAN_SCHEMA = ResponseSchema(
    name="execution_plan",
    json_schema={
        "type": "object",
        "properties": {
            "steps": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "order": {"type": "integer"},
                        "description": {"type": "string"},
                        "target": {"type": "string"},
                        "operation": {"type": "string"},
                        "parameters": {"type": "object"},
                    },
                    "required": ["order", "description", "target", "operation", "parameters"],
                    "additionalProperties": False,
                },
            },
            "risk_level": {"type": "string", "enum": ["low", "medium", "high"]},
            "approval_required": {"type": "boolean"},
            "rollback_plan": {"type": ["string", "null"]},
        },
        "required": ["steps", "risk_level", "approval_required", "rollback_plan"],
        "additionalProperties": False,
    },
    # Step parameters are free-form, which strict structured output rejects
    strict=False,
)

CHANNEL_GUIDANCE = {
    ExecutionChannel.API: (
        "Each step calls one API endpoint. target = connector name, "
        "operation = endpoint name, parameters = request parameters."
    ),
    ExecutionChannel.MCP: (
        "Each step calls one tool. target = tool server name, "
        "operation = tool name, parameters = tool input."
    ),
    ExecutionChannel.RPA: (
        "Each step is a GUI sub-goal. target = application name, "
        "operation = short sub-goal label (or an RPA template id), "
        "parameters = values to enter."
    ),
}

_RISK_LEVELS = ("low", "medium", "high")


class PlanGenerator:
    """
    Produces channel-scoped execution plans.

    Usage:
        >>> planner = PlanGenerator(llm)
        >>> plan = await planner.generate(problem, analysis, ExecutionChannel.API)
        >>> [step.operation for step in plan.ordered_steps()]
    """

    def __init__(self, llm: LLMProvider, parse_policy: ParsePolicy = FAIL_OPEN):
        self.llm = llm
        self.parse_policy = parse_policy

    async def generate(
        self,
        problem: str,
        analysis: ProblemAnalysis,
        channel: ExecutionChannel,
        resources: Optional[dict[str, Any]] = None,
    ) -> ExecutionPlan:
        """
        Generate a plan for the selected channel.

        Returns:
            ExecutionPlan; zero steps when output is missing or malformed (fail-open)

        Raises:
            MalformedModelOutput: Malformed output under a fail-closed policy
        """
        system = (
            "You are an industrial operations planner. Produce an ordered execution "
            f"plan for the '{channel.value}' execution method.\n"
            f"{CHANNEL_GUIDANCE[channel]}\n"
            "Assess the risk level; require approval for changes to production "
            "equipment, financial records or anything irreversible, and give a "
            "rollback plan when one exists."
        )
        if resources:
            system += "\n\nAvailable resources:\n" + json.dumps(resources, ensure_ascii=False, indent=2)

        user = (
            f"Problem: {problem}\n\n"
            "Analysis:\n"
            + analysis.model_dump_json(by_alias=True, indent=2)
        )

        response = await self.llm.complete(
            [Message(role="system", content=system), Message(role="user", content=user)],
            role=ModelRole.REASONING,
            response_schema=PLAN_SCHEMA,
        )

        data = parse_json_object(response.content, self.parse_policy, "execution plan")
        if data is None:
            return ExecutionPlan(channel=channel, problem=problem)

        raw_steps = data.get("steps")
        if not isinstance(raw_steps, list):
            self.parse_policy.malformed("execution plan", response.content)
            return ExecutionPlan(channel=channel, problem=problem)

        steps = []
        for position, raw in enumerate(raw_steps, start=1):
            if isinstance(raw, dict):
                raw = {"order": position, **raw}
            try:
                steps.append(PlanStep.model_validate(raw))
            except ValidationError:
                self.parse_policy.malformed("plan step", json.dumps(raw, default=str))

        risk_level = data.get("risk_level")
        if risk_level not in _RISK_LEVELS:
            risk_level = "low"

        rollback_plan = data.get("rollback_plan")
        plan = ExecutionPlan(
            channel=channel,
            problem=problem,
            steps=tuple(steps),
            risk_level=risk_level,
            approval_required=data.get("approval_required") is True,
            rollback_plan=rollback_plan if isinstance(rollback_plan, str) and rollback_plan else None,
        )

        logger.info(
            "Generated plan %s: %d step(s) on %s, risk=%s",
            plan.id,
            len(plan.steps),
            channel.value,
            plan.risk_level,
        )
        return plan
