from .orchestrator import DataAnalystOrchestrator, EngineConfig

__all__ = ["DataAnalystOrchestrator", "EngineConfig"]
