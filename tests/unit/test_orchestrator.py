"""
Unit tests for the orchestration engine.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from ops_agent.agents import OrchestrationEngine, create_engine
from ops_agent.connectors import APIConnector, APIConnectorConfig, APIEndpoint, ConnectorRegistry
from ops_agent.executors import APIExecutor, RPAExecutor, ToolExecutor
from ops_agent.mcp import MCPBridge, MCPServerConfig, MCPTool
from ops_agent.models import ComputerUseResult, ExecutionChannel

PROBLEM = "Work order WO-1182 did not sync from the MES to the ERP"

API_PLAN = {
    "steps": [
        {
            "order": 1,
            "description": "Resend the work order",
            "target": "kingdee",
            "operation": "resend_work_order",
            "parameters": {"id": "WO-1182"},
        }
    ],
    "risk_level": "low",
    "approval_required": False,
    "rollback_plan": None,
}

RPA_PLAN = {
    "steps": [
        {
            "order": 1,
            "description": "Acknowledge the boiler alarm",
            "target": "SCADA",
            "operation": "scada_ack_alarm",
            "parameters": {"alarm": "BOILER-2"},
        }
    ],
    "risk_level": "medium",
    "approval_required": False,
    "rollback_plan": None,
}

DONE = {"completed": True, "action": None, "reasoning": "done"}


@pytest.fixture
def requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def registry(requests) -> ConnectorRegistry:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"success": True, "data": {}})

    config = APIConnectorConfig(
        name="kingdee",
        base_url="https://erp.example.com",
        endpoints=[APIEndpoint(name="resend_work_order", method="POST", path="/work-orders/{id}/resend")],
    )
    return ConnectorRegistry([APIConnector(config, transport=httpx.MockTransport(handler))])


@pytest.fixture
def make_engine(llm, registry, engine_config):
    def factory(**kwargs) -> OrchestrationEngine:
        return OrchestrationEngine(
            llm,
            executors=kwargs.pop("executors", [APIExecutor(registry)]),
            config=engine_config,
            registry=registry,
            **kwargs,
        )

    return factory


class TestHandleProblem:

    @pytest.mark.asyncio
    async def test_api_problem_resolved(self, llm, make_engine, make_analysis, requests):
        llm.push(make_analysis("api", 0.85), API_PLAN)

        result = await make_engine().handle_problem(PROBLEM)

        assert result.success is True
        assert result.channel is ExecutionChannel.API
        assert result.error is None and result.failed_stage is None
        assert result.analysis.confidence == 0.85
        assert result.plan.steps[0].operation == "resend_work_order"
        assert result.result.data == [{"success": True, "data": {}}]
        assert [str(r.url) for r in requests] == ["https://erp.example.com/work-orders/WO-1182/resend"]
        assert result.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_resources_offered_to_both_model_calls(self, llm, make_engine, make_analysis):
        llm.push(make_analysis(), API_PLAN)

        await make_engine().handle_problem(PROBLEM)

        classify_system = llm.calls[0]["messages"][0].content
        plan_system = llm.calls[1]["messages"][0].content
        assert "resend_work_order" in classify_system
        assert "resend_work_order" in plan_system

    @pytest.mark.asyncio
    async def test_empty_classification(self, llm, make_engine):
        llm.push(None)

        result = await make_engine().handle_problem(PROBLEM)

        assert result.success is False
        assert result.failed_stage == "classify"
        assert result.analysis is None and result.plan is None

    @pytest.mark.asyncio
    async def test_malformed_classification(self, llm, make_engine, make_analysis):
        llm.push(make_analysis(confidence=1.7))

        result = await make_engine().handle_problem(PROBLEM)

        assert result.success is False
        assert result.failed_stage == "classify"
        assert "analysis schema" in result.error

    @pytest.mark.asyncio
    async def test_blank_problem(self, llm, make_engine):
        result = await make_engine().handle_problem("   ")

        assert result.success is False
        assert result.failed_stage == "classify"
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_non_text_report_returns_failed_result(self, llm, make_engine):
        result = await make_engine().handle_problem(None)

        assert result.success is False
        assert result.failed_stage == "classify"
        assert result.error
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_provider_error_reported(self, llm, make_engine):
        llm.push(RuntimeError("provider unavailable"))

        result = await make_engine().handle_problem(PROBLEM)

        assert result.success is False
        assert result.error == "provider unavailable"

    @pytest.mark.asyncio
    async def test_empty_plan_keeps_analysis(self, llm, make_engine, make_analysis):
        llm.push(make_analysis(), "I would resend the work order.")

        result = await make_engine().handle_problem(PROBLEM)

        assert result.success is False
        assert result.failed_stage == "execute"
        assert result.analysis is not None
        assert result.plan is not None and result.plan.steps == ()
        assert "no steps" in result.error

    @pytest.mark.asyncio
    async def test_step_failure_reported(self, llm, make_engine, make_analysis):
        plan = {**API_PLAN, "steps": [{**API_PLAN["steps"][0], "target": "sap"}]}
        llm.push(make_analysis(), plan)

        result = await make_engine().handle_problem(PROBLEM)

        assert result.success is False
        assert result.failed_stage == "execute"
        assert result.result.error_type == "ConnectorNotFound"
        assert "sap" in result.error

    @pytest.mark.asyncio
    async def test_channel_without_executor(self, llm, make_engine, make_analysis):
        llm.push(make_analysis("mcp"), API_PLAN)

        result = await make_engine().handle_problem(PROBLEM)

        assert result.success is False
        assert result.channel is ExecutionChannel.MCP
        assert result.failed_stage == "execute"
        assert "mcp" in result.error

    @pytest.mark.asyncio
    async def test_dry_run_stops_after_planning(self, llm, make_engine, make_analysis, requests):
        llm.push(make_analysis(), {**API_PLAN, "approval_required": True})

        result = await make_engine().handle_problem(PROBLEM, dry_run=True)

        assert result.success is True
        assert result.plan.approval_required is True
        assert result.result is None
        assert requests == []


class TestApproval:

    @pytest.mark.asyncio
    async def test_required_without_handler(self, llm, make_engine, make_analysis, requests):
        llm.push(make_analysis(), {**API_PLAN, "risk_level": "high", "approval_required": True})

        result = await make_engine().handle_problem(PROBLEM)

        assert result.success is False
        assert result.failed_stage == "approve"
        assert result.plan.risk_level == "high"
        assert requests == []

    @pytest.mark.asyncio
    async def test_rejected_by_handler(self, llm, make_engine, make_analysis, requests):
        llm.push(make_analysis(), {**API_PLAN, "approval_required": True})
        seen = []

        def reject(plan):
            seen.append(plan.id)
            return False

        result = await make_engine(approval_handler=reject).handle_problem(PROBLEM)

        assert result.failed_stage == "approve"
        assert seen == [result.plan.id]
        assert requests == []

    @pytest.mark.asyncio
    async def test_approved_by_handler(self, llm, make_engine, make_analysis, requests):
        llm.push(make_analysis(), {**API_PLAN, "approval_required": True})

        result = await make_engine(approval_handler=lambda plan: True).handle_problem(PROBLEM)

        assert result.success is True
        assert len(requests) == 1


class TestStageTimeout:

    @pytest.mark.asyncio
    async def test_slow_classification(self, llm, make_engine, engine_config):
        async def slow(*args, **kwargs):
            await asyncio.sleep(1)

        llm.complete = slow
        engine_config.stage_timeout = 0.05

        result = await make_engine().handle_problem(PROBLEM)

        assert result.success is False
        assert result.failed_stage == "classify"
        assert result.error == "Stage 'classify' timed out after 0.05s"

    @pytest.mark.asyncio
    async def test_disabled(self, llm, make_engine, make_analysis, engine_config):
        engine_config.stage_timeout = None
        llm.push(make_analysis(), API_PLAN)

        result = await make_engine().handle_problem(PROBLEM)

        assert result.success is True


class TestSelection:

    @pytest.mark.asyncio
    async def test_low_confidence_not_rerouted_by_default(self, llm, make_engine, make_analysis):
        llm.push(make_analysis("api", 0.1), API_PLAN)

        result = await make_engine().handle_problem(PROBLEM)

        assert result.channel is ExecutionChannel.API
        assert result.success is True

    @pytest.mark.asyncio
    async def test_policy_override(self, llm, make_engine, make_analysis):
        def escalate(analysis, channel):
            return ExecutionChannel.RPA if analysis.confidence < 0.5 else None

        llm.push(make_analysis("api", 0.2), API_PLAN)

        result = await make_engine(channel_policy=escalate).handle_problem(PROBLEM)

        assert result.channel is ExecutionChannel.RPA
        assert result.plan.channel is ExecutionChannel.RPA
        # The planner was asked for the overriding channel
        assert "'rpa'" in llm.calls[1]["messages"][0].content


class TestGatherResources:

    @pytest.mark.asyncio
    async def test_inventory(self, llm, registry, engine_config):
        bridge = MagicMock(spec=MCPBridge)
        bridge.list_servers.return_value = [MCPServerConfig(name="notion")]
        bridge.list_tools = AsyncMock(return_value=[MCPTool(name="search_pages")])
        rpa = MagicMock(spec=RPAExecutor)
        rpa.channel = ExecutionChannel.RPA
        engine = OrchestrationEngine(
            llm,
            executors=[APIExecutor(registry), ToolExecutor(bridge), rpa],
            config=engine_config,
            registry=registry,
            bridge=bridge,
        )

        resources = await engine.gather_resources()

        assert resources["api_connectors"] == {"kingdee": ["resend_work_order"]}
        assert resources["mcp_servers"] == {"notion": ["search_pages"]}
        assert "scada_ack_alarm" in resources["rpa_templates"]

    @pytest.mark.asyncio
    async def test_only_configured_channels(self, llm, registry, engine_config):
        engine = OrchestrationEngine(llm, executors=[], config=engine_config, registry=registry)

        assert await engine.gather_resources() == {}


class TestCreateEngine:

    def test_executors_follow_collaborators(self, llm, registry, drivers, engine_config):
        engine = create_engine(llm, config=engine_config, registry=registry, drivers=drivers)

        assert set(engine.executors) == {ExecutionChannel.API, ExecutionChannel.RPA}

    @pytest.mark.asyncio
    async def test_rpa_problem_resolved(self, llm, drivers, engine_config, make_analysis):
        engine_config.rpa_task_timeout = 30
        observed = []
        engine = create_engine(
            llm,
            config=engine_config,
            drivers=drivers,
            on_action=lambda step, action: observed.append((step, action.type)),
        )
        llm.push(
            make_analysis("rpa", 0.9),
            RPA_PLAN,
            {"steps": ["open alarm list", "acknowledge"]},
            {"completed": False, "action": {"type": "click", "x": 40, "y": 80}, "reasoning": "ack"},
            DONE,
        )

        result = await engine.handle_problem("Acknowledge the boiler pressure alarm")

        assert result.success is True
        assert result.channel is ExecutionChannel.RPA
        assert isinstance(result.result.data, ComputerUseResult)
        assert result.result.data.completed is True
        assert result.result.data.task_id == result.plan.id
        assert drivers.driver.events == [("click", 40, 80, "left")]
        assert observed == [(1, "click")]
        assert drivers.acquired == drivers.released == 1

    def test_stage_timeout_bounds_rpa_task(self, llm, drivers, engine_config):
        engine_config.stage_timeout = 120
        engine_config.rpa_task_timeout = None

        engine = create_engine(llm, config=engine_config, drivers=drivers)

        assert engine.executors[ExecutionChannel.RPA].task_timeout == 120

    def test_shorter_rpa_task_timeout_wins(self, llm, drivers, engine_config):
        engine_config.stage_timeout = 120
        engine_config.rpa_task_timeout = 30

        engine = create_engine(llm, config=engine_config, drivers=drivers)

        assert engine.executors[ExecutionChannel.RPA].task_timeout == 30

    @pytest.mark.asyncio
    async def test_rpa_timeout_keeps_partial_actions(self, llm, drivers, engine_config, make_analysis):
        engine_config.stage_timeout = 0.2
        engine_config.settle_interval = 0.01
        engine_config.max_steps = 10_000
        engine = create_engine(llm, config=engine_config, drivers=drivers)
        llm.push(make_analysis("rpa", 0.9), RPA_PLAN, {"steps": ["acknowledge"]})
        # The model never signals completion
        llm.default = {"completed": False, "action": {"type": "click", "x": 1, "y": 1}, "reasoning": "r"}

        result = await engine.handle_problem("Acknowledge the boiler pressure alarm")

        assert result.success is False
        assert result.failed_stage == "execute"
        assert "timed out after 0.2s" in result.error
        assert isinstance(result.result.data, ComputerUseResult)
        assert 0 < len(result.result.data.actions) <= len(drivers.driver.events)
        assert drivers.acquired == drivers.released == 1
