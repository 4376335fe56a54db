"""
Infrastructure Layer
=====================

Low-level technical concerns:
- Logging setup
- In-process event delivery
"""
