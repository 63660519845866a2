"""Query resolution pipeline."""

from statgraph.orchestrator.agent import QueryAgent
from statgraph.orchestrator.pipeline import Stage, StagePipeline
from statgraph.orchestrator.state import PipelineState

__all__ = ["PipelineState", "QueryAgent", "Stage", "StagePipeline"]
