"""Turn rotation domain services: engine, roster gateway, liveness, teams.

Imported by HTTP routes, socket handlers and CLI commands, keeping
transport concerns separated from the rotation state machine.
"""
