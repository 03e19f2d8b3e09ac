from .decision import PlanningDecisionAgent
from .generator import PlanGenerator

__all__ = ["PlanGenerator", "PlanningDecisionAgent"]
