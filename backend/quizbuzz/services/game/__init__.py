"""Buzzer game core: roles, shared state, scoring and broadcast snapshots."""
