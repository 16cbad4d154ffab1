"""Real-time transport — WebSocket subscribers.

Learn: This is the only package that knows about sockets. It adapts a
Starlette WebSocket into a SendHandle and forwards lifecycle events
(connect, message, disconnect) into the core ConnectionHandler.
"""
