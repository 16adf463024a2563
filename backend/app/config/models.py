"""
Model Configuration for Pipeline Stages

Each generation-backed stage has its own model configuration so stages can
be tuned independently (fast scoring, stronger writing, and so on).

Set CONVEYOR_MODEL to force a single model for every stage, or
CONVEYOR_PIPELINE=cost_optimized to use the cheaper preset.
"""

import os
from typing import Optional
from dataclasses import dataclass, field


@dataclass
class ModelConfig:
    """Configuration for a single pipeline stage's model"""
    model_name: str
    max_output_tokens: int = 2048
    temperature: float = 0.7
    description: str = ""


@dataclass
class PipelineModels:
    """
    Model configuration for every generation-backed stage.

    Scorer/Analyst/Architect are classification-like and run on a light model;
    Writer/Optimizer produce prose and get a stronger one.
    """

    scoring: ModelConfig = field(default_factory=lambda: ModelConfig(
        model_name="gemini-flash-lite-latest",
        max_output_tokens=1024,
        temperature=0.2,
        description="Virality scoring of source material"
    ))

    analysis: ModelConfig = field(default_factory=lambda: ModelConfig(
        model_name="gemini-flash-lite-latest",
        max_output_tokens=2048,
        temperature=0.3,
        description="Topic and fact extraction"
    ))

    architecture: ModelConfig = field(default_factory=lambda: ModelConfig(
        model_name="gemini-flash-lite-latest",
        max_output_tokens=1024,
        temperature=0.4,
        description="Format selection and timing template"
    ))

    writing: ModelConfig = field(default_factory=lambda: ModelConfig(
        model_name="gemini-2.5-flash",
        max_output_tokens=4096,
        temperature=0.8,
        description="Scene-by-scene script writing"
    ))

    quality_control: ModelConfig = field(default_factory=lambda: ModelConfig(
        model_name="gemini-2.5-flash",
        max_output_tokens=2048,
        temperature=0.2,
        description="Script quality review"
    ))

    optimization: ModelConfig = field(default_factory=lambda: ModelConfig(
        model_name="gemini-2.5-flash",
        max_output_tokens=4096,
        temperature=0.7,
        description="Targeted rewrite of weak scenes"
    ))


DEFAULT_PIPELINE_MODELS = PipelineModels()

COST_OPTIMIZED_PIPELINE = PipelineModels(
    writing=ModelConfig(
        model_name="gemini-flash-lite-latest",
        max_output_tokens=4096,
        temperature=0.8,
        description="Cheaper script writing"
    ),
    quality_control=ModelConfig(
        model_name="gemini-flash-lite-latest",
        max_output_tokens=2048,
        temperature=0.2,
        description="Cheaper quality review"
    ),
    optimization=ModelConfig(
        model_name="gemini-flash-lite-latest",
        max_output_tokens=4096,
        temperature=0.7,
        description="Cheaper rewrite"
    ),
)

_PIPELINES = {
    "default": DEFAULT_PIPELINE_MODELS,
    "cost_optimized": COST_OPTIMIZED_PIPELINE,
}

ACTIVE_PIPELINE = _PIPELINES.get(os.getenv("CONVEYOR_PIPELINE", "default"), DEFAULT_PIPELINE_MODELS)


def get_model_config(step: str) -> ModelConfig:
    """
    Get the model configuration for a specific pipeline step.

    Args:
        step: Pipeline step name (e.g., 'scoring', 'writing')

    Returns:
        ModelConfig for the specified step
    """
    if not hasattr(ACTIVE_PIPELINE, step):
        raise ValueError(f"Unknown pipeline step: {step}")
    config: ModelConfig = getattr(ACTIVE_PIPELINE, step)
    override = os.getenv("CONVEYOR_MODEL")
    if override:
        return ModelConfig(
            model_name=override,
            max_output_tokens=config.max_output_tokens,
            temperature=config.temperature,
            description=config.description,
        )
    return config


def get_model_name(step: str, default: Optional[str] = None) -> str:
    """Get just the model name for a pipeline step"""
    try:
        return get_model_config(step).model_name
    except ValueError:
        if default is None:
            raise
        return default


def list_pipeline_steps() -> list[str]:
    """List all available pipeline step names"""
    return [
        "scoring",
        "analysis",
        "architecture",
        "writing",
        "quality_control",
        "optimization",
    ]
