"""
Workspace Chat Engine.

Multi-tenant conversational retrieval engine with streamed, tool-augmented
responses, per-tenant quotas, and thread summarization.
"""
