"""Fake send handles for driving the core without sockets."""

import asyncio

from filterrelay.core.errors import SendFailure


class RecordingHandle:
    """SendHandle that keeps every message it was asked to deliver."""

    def __init__(self):
        self.messages = []

    async def send(self, message):
        self.messages.append(message)


class FailingHandle:
    """SendHandle for a connection that closed mid-flight."""

    def __init__(self):
        self.calls = 0

    async def send(self, message):
        self.calls += 1
        raise SendFailure("connection is closed")


class BrokenHandle:
    """SendHandle with a bug: raises something other than SendFailure."""

    async def send(self, message):
        raise ZeroDivisionError("boom")


class BlockingHandle:
    """SendHandle that stalls until released."""

    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.messages = []

    async def send(self, message):
        self.started.set()
        await self.release.wait()
        self.messages.append(message)
