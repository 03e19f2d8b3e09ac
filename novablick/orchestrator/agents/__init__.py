from .conversation import to_langchain_messages
from .executor import StepExecutor, ToolCallingLoop
from .planner import PlanGenerator, PlanningDecisionAgent
from .responder import DirectResponder
from .supervisor import DataAnalystOrchestrator, EngineConfig
from .synthesis import FinalSynthesizer

__all__ = [
    "DataAnalystOrchestrator",
    "DirectResponder",
    "EngineConfig",
    "FinalSynthesizer",
    "PlanGenerator",
    "PlanningDecisionAgent",
    "StepExecutor",
    "ToolCallingLoop",
    "to_langchain_messages",
]
