"""
Decision and Execution Agents

Model-backed stages of the problem-resolution pipeline:
- ProblemClassifier: report -> ProblemAnalysis (reasoning model)
- select_channel: analysis -> ExecutionChannel
- PlanGenerator: analysis + channel -> ExecutionPlan (reasoning model)
- ComputerUseAgent: perception-action loop for the RPA channel
- OrchestrationEngine: composes the stages behind handle_problem()
"""

from .classifier import ANALYSIS_SCHEMA, ProblemClassifier
from .selector import ChannelPolicy, select_channel
from .planner import PLAN_SCHEMA, PlanGenerator
from .computer_use import ComputerUseAgent
from .orchestrator import OrchestrationEngine, create_engine

__all__ = [
    "ANALYSIS_SCHEMA",
    "ChannelPolicy",
    "ComputerUseAgent",
    "OrchestrationEngine",
    "PLAN_SCHEMA",
    "PlanGenerator",
    "ProblemClassifier",
    "create_engine",
    "select_channel",
]
