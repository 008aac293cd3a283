# tests/test_actions.py
from __future__ import annotations

import pytest

from edrgen.domain import (
    ARITY,
    ActionKind,
    ConnectAction,
    ErrorKind,
    FileAction,
    GenerationError,
    PauseAction,
    ProcessAction,
    build_action,
)


def test_unknown_verb_is_input_format():
    with pytest.raises(GenerationError) as ei:
        ActionKind.from_verb("teleport")
    assert ei.value.kind is ErrorKind.INPUT_FORMAT
    assert "teleport is not a valid instruction" in ei.value.message


def test_every_verb_has_an_arity():
    assert set(ARITY) == set(ActionKind)


def test_process_arguments_joined_with_spaces():
    action = build_action(ActionKind.PROCESS, ["process", "/bin/echo", "a", "'b c'"])
    assert action == ProcessAction(path="/bin/echo", arguments="a 'b c' ")


def test_process_without_arguments():
    assert build_action(ActionKind.PROCESS, ["process", "/bin/true"]).arguments is None


def test_pause_parsing():
    assert build_action(ActionKind.PAUSE, ["pause", "250"]) == PauseAction(millis=250)
    for bad in (["pause", "-1"], ["pause", "1.5"], ["pause", ""], ["pause"], ["pause", "18446744073709551616"]):
        with pytest.raises(GenerationError) as ei:
            build_action(ActionKind.PAUSE, bad)
        assert ei.value.kind is ErrorKind.INPUT_FORMAT


def test_connect_parsing():
    action = build_action(ActionKind.CONNECT, ["connect", "10.0.0.1", "443", "hi"])
    assert action == ConnectAction(host="10.0.0.1", port=443, payload=b"hi")
    # 0 допустим на этапе разбора; отклоняет его сетевой канал
    assert build_action(ActionKind.CONNECT, ["connect", "h", "0", "x"]).port == 0
    with pytest.raises(GenerationError):
        build_action(ActionKind.CONNECT, ["connect", "h", "65536", "x"])


def test_file_actions_keep_their_kind():
    action = build_action(ActionKind.DELETE_FILE, ["delete_file", "/tmp/x"])
    assert action == FileAction(op=ActionKind.DELETE_FILE, path="/tmp/x")
    assert action.kind is ActionKind.DELETE_FILE


def test_generation_error_text():
    err = GenerationError("io", "disk full", os_kind="OSError")
    assert str(err) == "GenerationError {io: message: disk full }"
    assert err.with_context("other").os_kind == "OSError"
