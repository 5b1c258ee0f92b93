import io
import json

import pytest

from vortex.nucleus.errors import DispatchError, WriteError
from vortex.nucleus.node import Node
from vortex.nucleus.protocol import EchoOk, decode_request


def echo_request(msg_id, echo, src="c1", dest="n1"):
    body = {"type": "echo", "echo": echo}
    if msg_id is not None:
        body["msg_id"] = msg_id
    return decode_request({"src": src, "dest": dest, "body": body})


def replies(output):
    return [json.loads(line) for line in output.getvalue().splitlines()]


def test_init_reply():

    node = Node()
    output = io.StringIO()
    request = decode_request(
        '{"src":"c1","dest":"n1","body":{"msg_id":1,"type":"init","node_id":"n1","node_ids":["n1"]}}'
    )

    node.handle(request, output)

    assert output.getvalue() == '{"src":"n1","dest":"c1","body":{"msg_id":0,"in_reply_to":1,"type":"init_ok"}}\n'
    assert node.next_message_id == 1


def test_sequential_echoes():

    node = Node()
    output = io.StringIO()

    node.handle(echo_request(5, "a"), output)
    node.handle(echo_request(6, "b"), output)

    first, second = replies(output)
    assert first["body"] == {"msg_id": 0, "in_reply_to": 5, "type": "echo_ok", "echo": "a"}
    assert second["body"] == {"msg_id": 1, "in_reply_to": 6, "type": "echo_ok", "echo": "b"}


def test_message_ids_are_gap_free():

    node = Node()
    output = io.StringIO()

    for i in range(25):
        node.handle(echo_request(100 + i, str(i)), output)

    emitted = [reply["body"]["msg_id"] for reply in replies(output)]
    assert emitted == list(range(25))
    assert node.next_message_id == 25


def test_replies_correlate_and_swap_addresses():

    node = Node()
    output = io.StringIO()
    requests = [
        echo_request(3, "x", src="c1", dest="n1"),
        echo_request(3, "y", src="c2", dest="n1"),
        echo_request(17, "z", src="c9", dest="n4"),
    ]

    for request in requests:
        node.handle(request, output)

    for request, reply in zip(requests, replies(output)):
        assert reply["src"] == request.destination
        assert reply["dest"] == request.source
        assert reply["body"]["in_reply_to"] == request.body.message_id


@pytest.mark.parametrize("text", ["", "hello", "  padded  ", "line\nbreak", "ünïcødé ✓", '{"json": "inside"}'])
def test_echo_is_returned_unchanged(text):

    node = Node()
    output = io.StringIO()

    reply = node.handle(echo_request(1, text), output)

    assert reply.body.payload.root == EchoOk(echo=text)
    assert replies(output)[0]["body"]["echo"] == text


def test_uncorrelated_request_still_gets_a_reply():

    node = Node()
    output = io.StringIO()

    node.handle(echo_request(None, "fire and forget"), output)

    (reply,) = replies(output)
    assert reply["body"] == {"msg_id": 0, "type": "echo_ok", "echo": "fire and forget"}


def test_nodes_keep_separate_counters():

    first, second = Node(), Node()
    output = io.StringIO()

    first.handle(echo_request(1, "a"), output)
    first.handle(echo_request(2, "b"), output)
    second.handle(echo_request(1, "c"), output)

    assert first.next_message_id == 2
    assert second.next_message_id == 1
    assert replies(output)[2]["body"]["msg_id"] == 0


def test_failed_write_does_not_advance_counter():

    node = Node()
    output = io.StringIO()
    output.close()

    with pytest.raises(WriteError) as excinfo:
        node.handle(echo_request(8, "lost"), output)

    assert excinfo.value.phase == "write"
    assert excinfo.value.message_id == 8
    assert node.next_message_id == 0


def test_broken_pipe_is_a_write_error():

    class BrokenPipe(io.StringIO):
        def write(self, text):
            raise BrokenPipeError("reader went away")

    node = Node()

    with pytest.raises(WriteError):
        node.handle(echo_request(1, "a"), BrokenPipe())

    assert node.next_message_id == 0


def test_unhandled_payload_is_a_dispatch_error():

    node = Node()
    output = io.StringIO()
    request = echo_request(4, "a")
    request.body.payload.root = EchoOk(echo="a")

    with pytest.raises(DispatchError) as excinfo:
        node.handle(request, output)

    assert excinfo.value.message_id == 4
    assert output.getvalue() == ""
    assert node.next_message_id == 0
