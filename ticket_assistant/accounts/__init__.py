"""
Accounts Module
===============

Bounded context for user identities, roles and skills.

Credentials are handled by the upstream identity provider; this module
only keeps what ticket handling and assignment need.
"""
