"""
AI Ticket Assistant
===================

Support-ticket service that classifies new tickets with an LLM, routes
them to a moderator with matching skills and notifies the assignee.
"""

__version__ = "1.0.0"
