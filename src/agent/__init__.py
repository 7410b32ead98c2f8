"""
agent - Capability agents and the permission-gated tool layer.

Contains the agents, the agent registry, the tools and the ToolRegistry that
gates every tool access. Depends on domain/ only. Never imports from infrastructure/.
"""
