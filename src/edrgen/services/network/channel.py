# src/edrgen/services/network/channel.py
from __future__ import annotations

import logging
import socket
import threading
from concurrent.futures import Future
from typing import Optional

from edrgen.config import const
from edrgen.domain import ErrorKind, Event, GenerationError

log = logging.getLogger("edrgen.network")

_MAX_PORT = 0xFFFF


class SelfTestAcceptor:
    """
    Фоновый приёмник для loopback self-test:
      - принимает ровно одно соединение и читает до закрытия потока
      - результат (полученные байты) кладёт в future; при любой ошибке сокета: b""
      - ожидание accept/recv ограничено accept_timeout, чтобы «зависший» приёмник
        не выглядел как успех
    """

    def __init__(self, listener: socket.socket, *, accept_timeout: Optional[float] = const.DEFAULT_ACCEPT_TIMEOUT_S) -> None:
        self._listener = listener
        self._listener.settimeout(accept_timeout)
        self._accept_timeout = accept_timeout
        self.port: int = listener.getsockname()[1]
        self.future: Future[bytes] = Future()
        self._thread = threading.Thread(target=self._run, name=f"edrgen-selftest-{self.port}", daemon=True)

    def start(self) -> "SelfTestAcceptor":
        self._thread.start()
        return self

    def join(self, timeout: Optional[float] = None) -> bytes:
        """Ждёт полученные байты; по таймауту concurrent.futures.TimeoutError."""
        return self.future.result(timeout=timeout)

    def cancel(self) -> None:
        # shutdown будит поток, заблокированный в accept()
        try:
            self._listener.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self._listener.close()

    def _run(self) -> None:
        data = b""
        try:
            conn, peer = self._listener.accept()
            with conn:
                conn.settimeout(self._accept_timeout)
                chunks = []
                while True:
                    chunk = conn.recv(4096)
                    if not chunk:
                        break
                    chunks.append(chunk)
                data = b"".join(chunks)
            log.debug("network.selftest.received", extra={"extra": {"peer": list(peer), "bytes": len(data)}})
        except OSError as e:
            log.debug("network.selftest.failed", extra={"extra": {"port": self.port, "error": repr(e)}})
            data = b""
        finally:
            self._listener.close()
        self.future.set_result(data)


class NetworkChannel:
    def __init__(
        self,
        *,
        connect_timeout: Optional[float] = None,
        accept_timeout: Optional[float] = const.DEFAULT_ACCEPT_TIMEOUT_S,
    ) -> None:
        self._connect_timeout = connect_timeout
        self._accept_timeout = accept_timeout

    def connect_and_send(self, host: str, port: int, payload: bytes) -> Event:
        """TCP соединение: отправить весь payload и закрыть."""
        if port == 0:
            raise GenerationError(ErrorKind.NETWORK, "Port 0 is not a valid destination port")
        if not 0 < port <= _MAX_PORT:
            raise GenerationError(ErrorKind.NETWORK, f"Port {port} is out of range")

        try:
            sock = socket.create_connection((host, port), timeout=self._connect_timeout)
        except OSError as e:
            raise GenerationError.from_os_error(ErrorKind.NETWORK, e, f"Unable to connect to {host}:{port}") from None

        with sock:
            source = sock.getsockname()[:2]
            try:
                sock.sendall(payload)
            except OSError as e:
                raise GenerationError.from_os_error(ErrorKind.NETWORK, e, f"Unable to write to {host}:{port}") from None

        log.info(
            "network.connect",
            extra={"extra": {"source": list(source), "dest": [host, port], "bytes": len(payload)}},
        )
        return Event.for_network(source, (host, port), len(payload))

    def spawn_listener(self, interface: str, port: int) -> socket.socket:
        try:
            return socket.create_server((interface, port), backlog=1)
        except OSError as e:
            raise GenerationError.from_os_error(
                ErrorKind.NETWORK, e, f"Unable to listen on {interface}:{port}: {e}"
            ) from None

    def start_self_test(self, payload: bytes) -> tuple[Event, SelfTestAcceptor]:
        """Loopback round trip; возвращает и приёмник, чтобы вызывающий мог его дождаться."""
        listener = self.spawn_listener(const.LOOPBACK_HOST, 0)
        acceptor = SelfTestAcceptor(listener, accept_timeout=self._accept_timeout).start()
        try:
            event = self.connect_and_send(const.LOOPBACK_HOST, acceptor.port, payload)
        except GenerationError:
            acceptor.cancel()
            raise
        return event, acceptor

    def loopback_self_test(self, payload: bytes) -> Event:
        event, _acceptor = self.start_self_test(payload)
        return event
