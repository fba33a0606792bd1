# confsh - Embeddable Router-Style Configuration Shell
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Remote line server.

Single-threaded, selectors-driven, one attached client at a time:
- a second connection is told who holds the session and closed
- each attached connection gets a fresh Session (banner, then prompt)
- input is split on any run of CR/LF and fed to the session line by line;
  a client that sends more than MAX_LINE_BYTES without a line end is dropped
- output is queued and written as the socket accepts it
"""

from __future__ import annotations

import logging
import re
import selectors
import socket
from dataclasses import dataclass, field
from typing import Any

from .errors import DuplicateClientRejected
from .registry import Registry
from .session import (
    RunFlag,
    Session,
    SessionConfig,
    Transport,
    write_crash_log,
)
from .yaml_io import GrammarSelection

logger = logging.getLogger(__name__)

EOL_RE = re.compile(rb"[\r\n]+")
RECV_SIZE = 4096
POLL_INTERVAL = 0.5
MAX_LINE_BYTES = 64 * 1024


def format_address(address: Any) -> str:
    if isinstance(address, tuple) and len(address) >= 2:
        return f"{address[0]}:{address[1]}"
    return "unknown"


@dataclass
class _Client:
    sock: socket.socket
    address: Any
    session: Session | None = None
    inbuf: bytearray = field(default_factory=bytearray)
    outbuf: bytearray = field(default_factory=bytearray)

    @property
    def address_text(self) -> str:
        return format_address(self.address)

    def queue(self, text: str) -> None:
        text = text.replace("\r\n", "\n").replace("\n", "\r\n")
        self.outbuf += text.encode("utf-8")

    def take_lines(self) -> list[str]:
        *complete, rest = EOL_RE.split(bytes(self.inbuf))
        self.inbuf = bytearray(rest)
        return [line.decode("utf-8", errors="replace") for line in complete]


class LineServer:
    """Line-oriented TCP front end for confsh sessions."""

    def __init__(
        self,
        registry: Registry,
        selection: GrammarSelection | None = None,
        config: SessionConfig | None = None,
        flag: RunFlag | None = None,
    ) -> None:
        self.registry = registry
        self.selection = selection
        self.config = config or SessionConfig()
        self.flag = flag or RunFlag()
        self._selector = selectors.DefaultSelector()
        self._listener: socket.socket | None = None
        self._client: _Client | None = None

    # ---------- lifecycle ----------

    def start(self) -> None:
        if self._listener is not None:
            return
        listener = socket.create_server((self.config.host, self.config.port))
        listener.setblocking(False)
        self._selector.register(listener, selectors.EVENT_READ, self._accept)
        self._listener = listener
        logger.info("Listening on %s", format_address(self.address))

    def close(self) -> None:
        if self._client is not None:
            self._drop(self._client, "server shutdown")
        if self._listener is not None:
            self._selector.unregister(self._listener)
            self._listener.close()
            self._listener = None
        self._selector.close()

    def __enter__(self) -> LineServer:
        self.start()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def address(self) -> tuple[str, int]:
        if self._listener is None:
            raise RuntimeError("server is not started")
        host, port = self._listener.getsockname()[:2]
        return host, port

    @property
    def session(self) -> Session | None:
        return self._client.session if self._client else None

    # ---------- loop ----------

    def run_once(self, timeout: float | None = None) -> None:
        """Wait for readiness once and run the ready callbacks."""
        for key, mask in self._selector.select(timeout):
            callback = key.data
            callback(key.fileobj, mask)

    def run(self) -> None:
        self.start()
        try:
            while self.flag.running:
                self.run_once(POLL_INTERVAL)
        finally:
            self.close()

    # ---------- callbacks ----------

    def _accept(self, listener: socket.socket, mask: int) -> None:
        try:
            conn, addr = listener.accept()
        except BlockingIOError:
            return

        if self._client is not None:
            rejection = DuplicateClientRejected(self._client.address_text)
            logger.info("Rejected %s: %s", format_address(addr), rejection)
            try:
                conn.sendall(f"{rejection}\r\n".encode("utf-8"))
            except OSError as e:
                logger.debug("rejection notice not delivered: %s", e)
            finally:
                conn.close()
            return

        conn.setblocking(False)
        client = _Client(conn, addr)
        client.session = Session.create(
            self.registry,
            self.selection,
            config=self.config,
            flag=self.flag,
            transport=Transport.REMOTE,
            output_fn=client.queue,
        )
        self._client = client
        self._selector.register(conn, selectors.EVENT_READ, self._on_client)
        logger.info("Client attached from %s", client.address_text)

        client.session.write(client.session.banner())
        client.session.write(client.session.prompt)
        self._flush(client)

    def _on_client(self, sock: socket.socket, mask: int) -> None:
        client = self._client
        if client is None or client.sock is not sock:
            return
        if mask & selectors.EVENT_WRITE:
            self._flush(client)
            if self._client is not client:
                return
        if mask & selectors.EVENT_READ:
            self._read(client)

    def _read(self, client: _Client) -> None:
        try:
            data = client.sock.recv(RECV_SIZE)
        except BlockingIOError:
            return
        except OSError as e:
            self._drop(client, str(e))
            return
        if not data:
            self._drop(client, "EOF")
            return

        client.inbuf += data
        for line in client.take_lines():
            self._handle_line(client, line)
        if len(client.inbuf) > MAX_LINE_BYTES:
            logger.warning(
                "Client %s sent %d bytes without a line end",
                client.address_text, len(client.inbuf),
            )
            self._drop(client, "line too long")
            return
        self._flush(client)

    def _handle_line(self, client: _Client, line: str) -> None:
        session = client.session
        assert session is not None
        try:
            session.handle_line(line)
        except Exception as e:
            write_crash_log(
                e,
                raw_command=line,
                context="-".join(session.context.frames),
                transport=Transport.REMOTE.value,
            )
            session.write(
                f"[ERROR] Unhandled exception: {type(e).__name__}: {e}\n"
            )
        if session.running:
            session.write(session.prompt)

    def _flush(self, client: _Client) -> None:
        while client.outbuf:
            try:
                sent = client.sock.send(client.outbuf)
            except BlockingIOError:
                break
            except OSError as e:
                self._drop(client, str(e))
                return
            del client.outbuf[:sent]

        events = selectors.EVENT_READ
        if client.outbuf:
            events |= selectors.EVENT_WRITE
        self._selector.modify(client.sock, events, self._on_client)

    def _drop(self, client: _Client, reason: str) -> None:
        logger.info("Client %s detached (%s)", client.address_text, reason)
        try:
            self._selector.unregister(client.sock)
        except (KeyError, ValueError):
            pass
        client.sock.close()
        if self._client is client:
            self._client = None
