# tests/test_network.py
from __future__ import annotations

import socket

import pytest

from edrgen.domain import ErrorKind, GenerationError
from edrgen.services.network import NetworkChannel, SelfTestAcceptor


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_port_zero_is_rejected_without_a_socket(monkeypatch):
    def _boom(*a, **kw):
        raise AssertionError("no connection attempt expected")

    monkeypatch.setattr(socket, "create_connection", _boom)
    with pytest.raises(GenerationError) as ei:
        NetworkChannel().connect_and_send("127.0.0.1", 0, b"hello")
    assert ei.value.kind is ErrorKind.NETWORK


def test_loopback_round_trip_is_byte_exact():
    payload = b"hello \x00 world \xff"
    event, acceptor = NetworkChannel().start_self_test(payload)
    assert acceptor.join(timeout=5) == payload
    assert event.kind == "Network"
    assert event.dest_addr == "127.0.0.1"
    assert event.dest_port == str(acceptor.port)
    assert event.source_addr == "127.0.0.1"
    assert event.source_port.isdigit()
    assert event.bytes_sent == str(len(payload))
    assert event.protocol == "TCP"
    assert event.file_path == ""


def test_loopback_self_test_returns_event():
    event = NetworkChannel().loopback_self_test(b"ping")
    assert event.activity == "network_connect"
    assert event.bytes_sent == "4"


def test_connect_and_send_delivers_payload():
    with socket.create_server(("127.0.0.1", 0)) as server:
        port = server.getsockname()[1]
        event = NetworkChannel(connect_timeout=5).connect_and_send("127.0.0.1", port, b"abc")
        conn, _ = server.accept()
        with conn:
            conn.settimeout(5)
            assert conn.recv(16) == b"abc"
    assert event.dest_port == str(port)


def test_connect_refused_is_network_error():
    port = _free_port()
    with pytest.raises(GenerationError) as ei:
        NetworkChannel(connect_timeout=5).connect_and_send("127.0.0.1", port, b"x")
    assert ei.value.kind is ErrorKind.NETWORK
    assert "Unable to connect" in ei.value.message
    assert ei.value.os_kind == "ConnectionRefusedError"


def test_spawn_listener_on_busy_port_fails():
    channel = NetworkChannel()
    first = channel.spawn_listener("127.0.0.1", 0)
    try:
        port = first.getsockname()[1]
        with pytest.raises(GenerationError) as ei:
            channel.spawn_listener("127.0.0.1", port)
        assert ei.value.kind is ErrorKind.NETWORK
    finally:
        first.close()


def test_acceptor_yields_empty_bytes_when_cancelled():
    listener = NetworkChannel().spawn_listener("127.0.0.1", 0)
    acceptor = SelfTestAcceptor(listener, accept_timeout=10).start()
    acceptor.cancel()
    assert acceptor.join(timeout=5) == b""


def test_acceptor_gives_up_after_accept_timeout():
    listener = NetworkChannel().spawn_listener("127.0.0.1", 0)
    acceptor = SelfTestAcceptor(listener, accept_timeout=0.1).start()
    assert acceptor.join(timeout=5) == b""
