"""
Triage Module
=============

Bounded context for AI-assisted ticket triage.

Responsibilities:
- Classify new tickets (summary, priority, notes, related skills) with
  LLM providers, falling back to keyword heuristics
- Route each ticket to a moderator with matching skills, else an admin
- Notify the assignee
- Requeue runs that stalled
"""
