"""Conversations feature: entity, repository, service, controller and router.

Conversations are listed with message aggregates (count and last message
time) computed from the messages table.
"""
