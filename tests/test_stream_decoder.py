import pytest

from app.services.errors import TruncatedStreamError
from app.services.stream_decoder import (
    StreamDecoder,
    decode_stream,
    extract_content,
    iter_deltas,
)
from fakes import DONE, frame


def split_every(data: bytes, size: int):
    return [data[i:i + size] for i in range(0, len(data), size)]


def test_two_frames_then_done_decode_to_hello():
    chunks = [
        b'data: {"choices":[{"delta":{"content":"he"}}]}\n\n',
        b'data: {"choices":[{"delta":{"content":"llo"}}]}\n\n',
        b"data: [DONE]\n\n",
    ]
    assert decode_stream(chunks) == "hello"


def test_frame_truncated_mid_json_completes_on_next_chunk():
    chunks = [
        b'data: {"choices":[{"delta":{"con',
        b'tent":"hi"}}]}\n\n',
    ]
    assert decode_stream(chunks) == "hi"


def test_same_text_for_any_chunk_size():
    parts = ["Yo ", "that's ", "lowkey ", "bussin 💀", " fr fr ", "ñ🗿"]
    body = b"".join(frame(p) for p in parts) + DONE
    expected = "".join(parts)

    for size in range(1, len(body) + 1):
        assert decode_stream(split_every(body, size)) == expected, size


def test_every_two_way_split_matches_whole_frame():
    body = frame("no cap 🔥") + DONE
    whole = decode_stream([body])
    for cut in range(1, len(body)):
        assert decode_stream([body[:cut], body[cut:]]) == whole


def test_multibyte_character_split_across_chunks():
    body = frame("💀")
    raw = body.index("💀".encode("utf-8"))
    chunks = [body[:raw + 2], body[raw + 2:]]
    assert decode_stream(chunks) == "💀"


def test_comments_blank_lines_and_other_fields_are_ignored():
    chunks = [
        b": keep-alive\n",
        b"\n",
        b"event: message\n",
        b"id: 7\n",
        b"data:{\"choices\":[{\"delta\":{\"content\":\"nope\"}}]}\n",
        frame("ok"),
        b":\n\n",
        DONE,
    ]
    assert decode_stream(chunks) == "ok"


def test_crlf_line_endings():
    body = frame("a").replace(b"\n", b"\r\n") + frame("b").replace(b"\n", b"\r\n") + b"data: [DONE]\r\n\r\n"
    assert decode_stream(split_every(body, 3)) == "ab"


def test_done_is_not_content_and_ends_the_round():
    dec = StreamDecoder()
    out = dec.feed(frame("x") + DONE + frame("late"))
    assert out == ["x"]
    assert dec.done
    assert dec.pending == ""


def test_bytes_after_done_are_not_buffered():
    dec = StreamDecoder()
    dec.feed(DONE)
    for _ in range(1000):
        assert dec.feed(b"data: x\n" * 10) == []
    assert dec.pending == ""
    assert dec.finish() == []
    assert dec.unparsed == []


def test_frames_after_done_are_ignored():
    assert decode_stream([frame("x"), DONE, frame("late")]) == "x"
    assert decode_stream([frame("x") + DONE + frame("late")]) == "x"


def test_frames_without_content_contribute_nothing():
    chunks = [
        b'data: {"choices":[{"delta":{"role":"assistant"}}]}\n\n',
        b'data: {"choices":[{"delta":{"content":null}}]}\n\n',
        b'data: {"choices":[]}\n\n',
        b'data: {"usage":{"total_tokens":3}}\n\n',
        b"data: 42\n\n",
        frame("only"),
        DONE,
    ]
    assert decode_stream(chunks) == "only"


def test_unparseable_line_is_pushed_back_not_dropped():
    dec = StreamDecoder()
    assert dec.feed(frame("a") + b"data: {broken\n") == ["a"]
    assert dec.pending == "data: {broken\n"
    assert dec.text == "a"


def test_deltas_are_surfaced_per_chunk():
    dec = StreamDecoder()
    assert dec.feed(frame("one")) == ["one"]
    assert dec.feed(frame("two") + frame("three")) == ["two", "three"]
    assert dec.text == "onetwothree"


def test_unterminated_last_frame_is_decoded_at_end():
    chunks = [frame("a"), b'data: {"choices":[{"delta":{"content":"z"}}]}']
    assert decode_stream(chunks) == "az"


def test_stream_cut_mid_frame_raises_after_yielding_everything_else():
    gen = iter_deltas([frame("a"), frame("b"), b'data: {"choices":[{"del'])
    got = []
    with pytest.raises(TruncatedStreamError) as exc:
        for d in gen:
            got.append(d)
    assert got == ["a", "b"]
    assert exc.value.tail.startswith('data: {"choices"')


def test_garbage_after_done_is_silent():
    assert decode_stream([frame("fin"), DONE, b"data: {oops"]) == "fin"


def test_should_stop_halts_between_reads():
    seen = []

    def chunks():
        for p in ["a", "b", "c"]:
            seen.append(p)
            yield frame(p)

    stop = {"flag": False}
    out = []
    for d in iter_deltas(chunks(), should_stop=lambda: stop["flag"]):
        out.append(d)
        stop["flag"] = True
    assert out == ["a"]
    assert seen == ["a", "b"]


def test_feed_after_finish_is_an_error():
    dec = StreamDecoder()
    dec.finish()
    with pytest.raises(RuntimeError):
        dec.feed(b"data: [DONE]\n")


@pytest.mark.parametrize(
    "event, expected",
    [
        ({"choices": [{"delta": {"content": "hey"}}]}, "hey"),
        ({"choices": [{"delta": {}}]}, None),
        ({"choices": [{"message": {"content": "full"}}]}, None),
        ({"choices": "nope"}, None),
        ([1, 2], None),
        ("text", None),
    ],
)
def test_extract_content(event, expected):
    assert extract_content(event) == expected
