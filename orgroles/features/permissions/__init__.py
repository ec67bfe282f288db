"""
Authorization guard for organization role management.

Composes the global organization capabilities with capabilities delegated
inside a single organization through the roles a user holds there.
"""
