"""
Shared Kernel Module
====================

Generic infrastructure used across all bounded contexts (tickets,
accounts, triage): logging, the in-process event bus, pagination and
the HTTP plumbing.

DO NOT add ticket or triage business logic to the shared kernel.
"""
