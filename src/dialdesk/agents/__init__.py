"""Agents for the DialDesk calling CRM."""

from .hunter_agent import HunterAgent, ScrapeSession

__all__ = ["HunterAgent", "ScrapeSession"]
