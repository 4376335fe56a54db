"""
Infrastructure Package
======================

Database engine/session management and LLM SDK clients.
"""
