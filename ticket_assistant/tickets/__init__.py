"""
Tickets Module
==============

Bounded context for support tickets: creation, listing with role scoping,
staff updates and admin deletion. Creating a ticket hands it to the
triage module.
"""
