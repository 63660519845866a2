"""LLM infrastructure module."""

from statgraph.infrastructure.llm.oracle import LLMOracle, create_llm_client

__all__ = [
    "LLMOracle",
    "create_llm_client",
]
