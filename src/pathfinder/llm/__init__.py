from pathfinder.llm.client import call_llm

__all__ = ["call_llm"]
