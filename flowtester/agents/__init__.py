"""Agents package"""
from .base_agent import BaseAgent
from .extractor_agent import PageStateExtractor
from .planner_agent import ActionDecisionEngine
from .executor_agent import ActionExecutor, resolve_target
from .verifier_agent import VisionVerifier
from .standard_flow_agent import StandardFlowAgent, STANDARD_STEPS
from .orchestrator_agent import StepOrchestrator

__all__ = [
    "BaseAgent",
    "PageStateExtractor",
    "ActionDecisionEngine",
    "ActionExecutor",
    "resolve_target",
    "VisionVerifier",
    "StandardFlowAgent",
    "STANDARD_STEPS",
    "StepOrchestrator",
]
