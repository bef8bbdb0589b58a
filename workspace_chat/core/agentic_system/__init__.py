"""
Agentic system: tool-calling orchestration, prompts, and built-in tools.
"""
