"""
Tests for the incremental response parsers.
"""
import json
import unittest

from askllm.stream import JsonBodyParser, StreamParser


def sse_line(content):
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]}, ensure_ascii=False) + "\n"


PAYLOAD = (
    "data: " + json.dumps({"choices": [{"delta": {"role": "assistant", "content": None}}]}) + "\n\n"
    + sse_line("Grüß") + "\n"
    + sse_line(" Gott") + "\n"
    + sse_line("!") + "\n"
    + "data: [DONE]\n\n"
).encode("utf-8")


def split_every(data, size):
    return [data[i:i + size] for i in range(0, len(data), size)]


class StreamParserTests(unittest.TestCase):

    def feed_all(self, chunks):
        parser = StreamParser()
        fragments = []
        for chunk in chunks:
            fragments.extend(parser.feed(chunk))
        fragments.extend(parser.close())
        return parser, fragments

    def test_single_fragment_scenario(self):
        body = (
            'data: {"choices":[{"delta":{"content":"4"}}]}\n'
            "data: [DONE]\n"
        ).encode("utf-8")
        received = []
        parser = StreamParser(on_fragment=received.append)
        fragments = parser.feed(body) + parser.close()
        self.assertEqual(fragments, ["4"])
        self.assertEqual(received, ["4"])
        self.assertEqual(parser.answer, "4")
        self.assertTrue(parser.done)

    def test_chunk_boundaries_do_not_change_fragments(self):
        _, expected = self.feed_all([PAYLOAD])
        self.assertEqual(expected, ["Grüß", " Gott", "!"])
        for size in (1, 2, 3, 5, 7, 16, 64):
            with self.subTest(size=size):
                parser, fragments = self.feed_all(split_every(PAYLOAD, size))
                self.assertEqual(fragments, expected)
                self.assertEqual(parser.answer, "Grüß Gott!")

    def test_sentinel_is_never_a_fragment(self):
        parser, fragments = self.feed_all([b"data: [DONE]\n"])
        self.assertEqual(fragments, [])
        self.assertEqual(parser.answer, "")
        self.assertTrue(parser.done)

    def test_lines_after_sentinel_are_ignored(self):
        body = b"data: [DONE]\n" + sse_line("late").encode("utf-8")
        parser, fragments = self.feed_all([body])
        self.assertEqual(fragments, [])

    def test_malformed_frame_is_skipped(self):
        body = (sse_line("a") + 'data: {"choices": [\n' + sse_line("b")).encode("utf-8")
        parser, fragments = self.feed_all([body])
        self.assertEqual(fragments, ["a", "b"])
        self.assertEqual(parser.answer, "ab")

    def test_frames_without_delta_are_skipped(self):
        body = (
            'data: {"choices": []}\n'
            'data: {"object": "chat.completion.chunk"}\n'
            'data: "just a string"\n'
            + sse_line("ok")
        ).encode("utf-8")
        _, fragments = self.feed_all([body])
        self.assertEqual(fragments, ["ok"])

    def test_crlf_and_comment_lines(self):
        body = (": keep-alive\r\n" + sse_line("x").replace("\n", "\r\n") + "event: ping\r\n").encode("utf-8")
        _, fragments = self.feed_all([body])
        self.assertEqual(fragments, ["x"])

    def test_end_of_body_flushes_last_line(self):
        body = sse_line("tail").rstrip("\n").encode("utf-8")
        parser = StreamParser()
        self.assertEqual(parser.feed(body), [])
        self.assertEqual(parser.close(), ["tail"])
        self.assertFalse(parser.done)

    def test_incomplete_line_is_held_back(self):
        line = sse_line("held").encode("utf-8")
        parser = StreamParser()
        self.assertEqual(parser.feed(line[:-1]), [])
        self.assertEqual(parser.feed(line[-1:]), ["held"])


class JsonBodyParserTests(unittest.TestCase):

    BODY = json.dumps({
        "id": "chatcmpl-1",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": "  Paris.  "}}],
    }).encode("utf-8")

    def test_waits_for_complete_body(self):
        parser = JsonBodyParser()
        chunks = split_every(self.BODY, 10)
        for chunk in chunks[:-1]:
            self.assertIsNone(parser.feed(chunk))
        self.assertEqual(parser.feed(chunks[-1]), "Paris.")
        self.assertEqual(parser.close(), "Paris.")

    def test_brace_inside_body_does_not_end_parse_early(self):
        body = json.dumps({"choices": [{"message": {"content": "{}"}}]}).encode("utf-8")
        cut = body.index(b"}") + 1
        parser = JsonBodyParser()
        self.assertIsNone(parser.feed(body[:cut]))
        self.assertEqual(parser.feed(body[cut:]), "{}")

    def test_trailing_newline(self):
        parser = JsonBodyParser()
        self.assertEqual(parser.feed(self.BODY + b"\n"), "Paris.")

    def test_null_content(self):
        parser = JsonBodyParser()
        body = b'{"choices": [{"message": {"role": "assistant", "content": null}}]}'
        self.assertEqual(parser.feed(body), "")

    def test_malformed_body_never_answers(self):
        parser = JsonBodyParser()
        self.assertIsNone(parser.feed(b'{"error": "broken"'))
        self.assertIsNone(parser.feed(b', "x": }'))
        self.assertIsNone(parser.close())

    def test_body_without_choices(self):
        parser = JsonBodyParser()
        self.assertIsNone(parser.feed(b'{"error": {"message": "nope"}}'))
        self.assertIsNone(parser.close())


if __name__ == "__main__":
    unittest.main()
