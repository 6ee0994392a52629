"""
agents package

Intentionally avoid importing submodules at package import time to prevent
side effects (e.g., DB connections, OpenAI clients) during test collection.
Import specific modules directly, e.g.:

    from vintellitour.agents.orchestrator_agent import DialogueOrchestrator
"""

__all__: list[str] = []
