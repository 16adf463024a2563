"""
Services package - Core business logic and integrations

Organized by domain responsibility:

Pipeline (Core Script Flow):
    - pipeline/agents: One stage agent per pipeline stage (Scout ... Delivery)
    - pipeline/qc_loop: Quality control / optimizer iteration
    - pipeline/orchestrator: Runs an item through the stages
    - pipeline/revision: Forks delivered scripts for revision runs
    - pipeline/learning: Adapts user settings from review outcomes
    - pipeline/events: In-process event bus and durable event log

Infrastructure (Technical Concerns):
    - infrastructure/llm: Generation backend (Gemini, prompts, cost tracking)
    - infrastructure/storage: Data persistence
    - infrastructure/sources: Source discovery (RSS) and full-article fetch
    - infrastructure/parsing: JSON extraction utilities

Scheduling:
    - scheduling: Periodic batch runner with budget and daily caps

Use Cases (Application Layer):
    - use_cases: Manual triggers and script review

The container module wires all of the above for one data directory.
"""

from .container import ServiceContainer, get_container, reset_container

__all__ = [
    "ServiceContainer",
    "get_container",
    "reset_container",
]
