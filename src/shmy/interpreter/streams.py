"""Byte streams used to wire commands together.

Sources are read by a command (its stdin); sinks are written by a command
(its stdout or stderr). In-process stages talk through a bounded Channel;
external processes are handed a real file descriptor when the stream has
one, otherwise a pipe that a relay task services.
"""

from __future__ import annotations

import asyncio
import sys
from typing import IO, AsyncIterator, Callable, Optional, Union

CHUNK_SIZE = 65536
CHANNEL_DEPTH = 16


def to_bytes(data: Union[str, bytes]) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else data


def to_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


class Source:
    """Readable end of a stream."""

    async def read(self, n: int = -1) -> bytes:
        """Read up to n bytes (everything when n < 0); b"" at end of stream."""
        raise NotImplementedError

    async def readline(self) -> bytes:
        line = bytearray()
        while not line.endswith(b"\n"):
            chunk = await self.read(1)
            if not chunk:
                break
            line += chunk
        return bytes(line)

    async def lines(self) -> AsyncIterator[str]:
        """Iterate decoded lines without their line terminators."""
        while True:
            line = await self.readline()
            if not line:
                return
            yield to_text(line).rstrip("\r\n")

    async def read_text(self) -> str:
        return to_text(await self.read())

    def subprocess_stdin(self) -> Optional[int]:
        """File descriptor (or asyncio.subprocess constant) for a child's stdin.

        None means the orchestrator must use a pipe and relay into it.
        """
        return None

    def close_reader(self) -> None:
        """Signal that nothing more will be read from this source."""

    async def discard(self) -> None:
        """Give up on the rest of the stream."""
        self.close_reader()


class EmptySource(Source):
    async def read(self, n: int = -1) -> bytes:
        return b""

    async def readline(self) -> bytes:
        return b""

    def subprocess_stdin(self) -> Optional[int]:
        return asyncio.subprocess.DEVNULL


class BytesSource(Source):
    """Source over an in-memory buffer."""

    def __init__(self, data: Union[str, bytes]):
        self.data = to_bytes(data)
        self.offset = 0

    async def read(self, n: int = -1) -> bytes:
        end = len(self.data) if n < 0 else min(len(self.data), self.offset + n)
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk

    async def readline(self) -> bytes:
        newline = self.data.find(b"\n", self.offset)
        end = len(self.data) if newline < 0 else newline + 1
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk


class ConsoleSource(Source):
    """The interpreter's own standard input."""

    def __init__(self, stream: Optional[IO[str]] = None):
        self.stream = stream or sys.stdin

    async def read(self, n: int = -1) -> bytes:
        loop = asyncio.get_running_loop()
        buffer = self.stream.buffer
        if n < 0:
            return await loop.run_in_executor(None, buffer.read)
        return await loop.run_in_executor(None, buffer.read1, n)

    async def readline(self) -> bytes:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.stream.buffer.readline)

    def subprocess_stdin(self) -> Optional[int]:
        return self.stream.fileno()


class ReaderSource(Source):
    """Source over an asyncio StreamReader (a child process's output pipe)."""

    def __init__(self, reader: asyncio.StreamReader):
        self.reader = reader

    async def read(self, n: int = -1) -> bytes:
        return await self.reader.read(n)

    async def readline(self) -> bytes:
        return await self.reader.readline()

    async def discard(self) -> None:
        # The writer is a process: let it run to completion
        while await self.reader.read(CHUNK_SIZE):
            pass


class Sink:
    """Writable end of a stream."""

    async def write(self, data: Union[str, bytes]) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        """Signal end of stream. Terminal sinks (console, files) ignore this."""

    def subprocess_target(self) -> Optional[int]:
        """File descriptor (or asyncio.subprocess constant) for a child's output.

        None means the orchestrator must use a pipe and relay from it.
        """
        return None

    def is_terminal(self) -> bool:
        return False


class BufferSink(Sink):
    """Collects output in memory."""

    def __init__(self):
        self.buffer = bytearray()

    async def write(self, data: Union[str, bytes]) -> None:
        self.buffer += to_bytes(data)

    def getvalue(self) -> str:
        return to_text(bytes(self.buffer))


class NullSink(Sink):
    """Discards everything (`$__stdout = NULL`)."""

    async def write(self, data: Union[str, bytes]) -> None:
        pass

    def subprocess_target(self) -> Optional[int]:
        return asyncio.subprocess.DEVNULL


class FileSink(Sink):
    """Writes to an open binary file; closing the file is up to its owner."""

    def __init__(self, file: IO[bytes]):
        self.file = file

    async def write(self, data: Union[str, bytes]) -> None:
        self.file.write(to_bytes(data))
        self.file.flush()

    def subprocess_target(self) -> Optional[int]:
        return self.file.fileno()


class DeferredFileSink(FileSink):
    """A redirect target that is opened (and truncated) on first use.

    Pipelines open it once their confirmations passed, so a declined command
    leaves the target untouched.
    """

    def __init__(self, opener: Callable[[], IO[bytes]]):
        self.opener = opener
        self.file: Optional[IO[bytes]] = None  # type: ignore[assignment]

    def open(self) -> None:
        if self.file is None:
            self.file = self.opener()

    def close_file(self) -> None:
        if self.file is not None:
            self.file.close()

    async def write(self, data: Union[str, bytes]) -> None:
        self.open()
        await super().write(data)

    def subprocess_target(self) -> Optional[int]:
        self.open()
        return super().subprocess_target()


class ConsoleSink(Sink):
    """The interpreter's own stdout or stderr."""

    def __init__(self, stream: Optional[IO[str]] = None):
        self.stream = stream or sys.stdout

    async def write(self, data: Union[str, bytes]) -> None:
        self.stream.flush()
        self.stream.buffer.write(to_bytes(data))
        self.stream.buffer.flush()

    def subprocess_target(self) -> Optional[int]:
        self.stream.flush()
        return self.stream.fileno()

    def is_terminal(self) -> bool:
        return self.stream.isatty()


class WriterSink(Sink):
    """Sink over an asyncio StreamWriter (a child process's input pipe)."""

    def __init__(self, writer: asyncio.StreamWriter):
        self.writer = writer

    async def write(self, data: Union[str, bytes]) -> None:
        if self.writer.is_closing():
            raise BrokenPipeError("write to closed pipe")
        self.writer.write(to_bytes(data))
        await self.writer.drain()

    async def close(self) -> None:
        if not self.writer.is_closing():
            self.writer.close()
        try:
            await self.writer.wait_closed()
        except (BrokenPipeError, ConnectionResetError):
            pass


class Channel:
    """Bounded in-process byte pipe between two pipeline stages."""

    def __init__(self, depth: int = CHANNEL_DEPTH):
        self.queue: asyncio.Queue[Optional[bytes]] = asyncio.Queue(maxsize=depth)
        self.reader_closed = False

    async def put(self, chunk: Optional[bytes]) -> None:
        if self.reader_closed:
            if chunk is None:
                return
            raise BrokenPipeError("pipe reader has exited")
        await self.queue.put(chunk)

    def close_reader(self) -> None:
        """Stop reading: unblock pending writers and fail later writes."""
        self.reader_closed = True
        while not self.queue.empty():
            self.queue.get_nowait()


class ChannelSink(Sink):
    def __init__(self, channel: Channel):
        self.channel = channel
        self.closed = False

    async def write(self, data: Union[str, bytes]) -> None:
        chunk = to_bytes(data)
        if chunk:
            await self.channel.put(chunk)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            await self.channel.put(None)


class ChannelSource(Source):
    def __init__(self, channel: Channel):
        self.channel = channel
        self.pending = b""
        self.eof = False

    async def _fill(self) -> bool:
        if self.eof:
            return False
        chunk = await self.channel.queue.get()
        if chunk is None:
            self.eof = True
            return False
        self.pending += chunk
        return True

    async def read(self, n: int = -1) -> bytes:
        if n < 0:
            while await self._fill():
                pass
            data, self.pending = self.pending, b""
            return data
        if not self.pending:
            await self._fill()
        data, self.pending = self.pending[:n], self.pending[n:]
        return data

    async def readline(self) -> bytes:
        while b"\n" not in self.pending:
            if not await self._fill():
                break
        newline = self.pending.find(b"\n")
        end = len(self.pending) if newline < 0 else newline + 1
        data, self.pending = self.pending[:end], self.pending[end:]
        return data

    def close_reader(self) -> None:
        self.channel.close_reader()


async def relay(source: Source, sink: Sink, close: bool = True) -> None:
    """Copy source to sink until end of stream or until the reader goes away."""
    try:
        while True:
            chunk = await source.read(CHUNK_SIZE)
            if not chunk:
                break
            await sink.write(chunk)
    except (BrokenPipeError, ConnectionResetError):
        await source.discard()
    finally:
        if close:
            await sink.close()
