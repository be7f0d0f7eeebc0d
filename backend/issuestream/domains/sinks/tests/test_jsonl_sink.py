"""Unit tests for JsonLinesSink and FakeEventSink."""

import json

import pytest

from issuestream.domains.sinks import EventSink, JsonLinesSink
from issuestream.domains.sinks.fakes import FakeEventSink
from issuestream.platform.sync.emitter import EventEmitter


@pytest.fixture
def events(make_issue, t0):
    emitter = EventEmitter("octo", "hello", "github-issues")
    return [emitter.emit(make_issue(number, t0), t0, 1) for number in (1, 2)]


class TestJsonLinesSink:
    """One JSON document per line."""

    @pytest.mark.asyncio
    async def test_appends_one_line_per_event(self, tmp_path, events):
        path = tmp_path / "out" / "issues.jsonl"
        sink = JsonLinesSink(path)

        for event in events:
            await sink.publish(event)
        await sink.close()

        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["key"] == {"owner": "octo", "repository": "hello", "number": 1}
        assert first["topic"] == "github-issues"
        assert first["offset"] == events[0].offset
        assert sink.published == 2

    @pytest.mark.asyncio
    async def test_appends_across_sinks(self, tmp_path, events):
        path = tmp_path / "issues.jsonl"
        for event in events:
            sink = JsonLinesSink(path)
            await sink.publish(event)
            await sink.close()

        assert len(path.read_text(encoding="utf-8").splitlines()) == 2

    @pytest.mark.asyncio
    async def test_close_without_publish(self, tmp_path):
        sink = JsonLinesSink(tmp_path / "unused.jsonl")

        await sink.close()

        assert not (tmp_path / "unused.jsonl").exists()

    def test_implements_protocol(self, tmp_path):
        assert isinstance(JsonLinesSink(tmp_path / "x.jsonl"), EventSink)


class TestFakeEventSink:
    """The fake records and can fail on demand."""

    @pytest.mark.asyncio
    async def test_records_events(self, events):
        sink = FakeEventSink()

        for event in events:
            await sink.publish(event)

        assert sink.issue_numbers == [1, 2]

    @pytest.mark.asyncio
    async def test_fail_on(self, events):
        sink = FakeEventSink(fail_on=1)
        await sink.publish(events[0])

        with pytest.raises(RuntimeError):
            await sink.publish(events[1])

        assert sink.issue_numbers == [1]
