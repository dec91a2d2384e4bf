from .agents import Agent, AgentKind, SAFE_TOOLS, SYSTEM, CODER, ORGANIZER, get_agent, list_agents

__all__ = ["Agent", "AgentKind", "SAFE_TOOLS", "SYSTEM", "CODER", "ORGANIZER", "get_agent", "list_agents"]
