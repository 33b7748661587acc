"""Domain services: stores, authentication and the buzzer game core.

Transport concerns (Socket.IO, HTTP) live outside this package and only
call into :class:`quizbuzz.services.game.engine.GameEngine`.
"""
