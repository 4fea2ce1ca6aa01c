"""Tests for background checks and the shared message list."""

from __future__ import annotations

import threading

from ocabuild.build.cache import ContentHashCache
from ocabuild.build.planner import BuildPlanner
from ocabuild.build.scan import scan_directory
from ocabuild.build.worker import BackgroundChecker, Busy, Message, MessageList
from ocabuild.core.errors import NonexistentPath
from ocabuild.graph.store import MutableGraph
from tests.helpers.facades import RecordingFacade

TIMEOUT = 5


class TestMessageList:
    def test_publish_current_generation(self):
        messages = MessageList()
        generation = messages.begin(Busy.VALIDATING)
        assert messages.busy is Busy.VALIDATING

        assert messages.publish(generation, [Message.info("ok")])
        assert messages.busy is Busy.IDLE
        assert messages.last_action is Busy.VALIDATING
        assert messages.items() == [Message.info("ok")]

    def test_stale_generation_discarded(self):
        messages = MessageList()
        first = messages.begin(Busy.VALIDATING)
        second = messages.begin(Busy.BUILDING)

        assert not messages.publish(first, [Message.error("old")])
        assert messages.busy is Busy.BUILDING
        assert messages.items() == []

        assert messages.publish(second, [Message.info("new")])
        assert messages.items() == [Message.info("new")]
        assert messages.last_action is Busy.BUILDING

    def test_errors_filter(self):
        messages = MessageList()
        generation = messages.begin(Busy.VALIDATING)
        messages.publish(generation, [Message.error("bad"), Message.info("fine")])
        assert messages.errors() == [Message.error("bad")]


class TestBackgroundChecker:
    def test_task_result_published(self):
        checker = BackgroundChecker()
        checker.start(Busy.VALIDATING, lambda: [Message.info("done")])
        assert checker.wait(TIMEOUT)
        assert not checker.busy
        assert checker.messages.items() == [Message.info("done")]

    def test_busy_while_running(self):
        release = threading.Event()

        def task():
            release.wait(TIMEOUT)
            return []

        checker = BackgroundChecker()
        checker.start(Busy.BUILDING, task)
        assert checker.busy
        release.set()
        assert checker.wait(TIMEOUT)
        assert not checker.busy

    def test_second_request_wins(self):
        release_first = threading.Event()
        checker = BackgroundChecker()

        def slow():
            release_first.wait(TIMEOUT)
            return [Message.info("first")]

        checker.start(Busy.VALIDATING, slow)
        first_thread = checker._thread
        checker.start(Busy.VALIDATING, lambda: [Message.info("second")])
        assert checker.wait(TIMEOUT)

        release_first.set()
        first_thread.join(TIMEOUT)
        assert checker.messages.items() == [Message.info("second")]
        assert not checker.busy

    def test_domain_error_becomes_message(self, tmp_path):
        def task():
            raise NonexistentPath(tmp_path / "nope")

        checker = BackgroundChecker()
        checker.start(Busy.BUILDING, task)
        assert checker.wait(TIMEOUT)
        [message] = checker.messages.errors()
        assert message.path == tmp_path / "nope"

    def test_crash_clears_busy_flag(self):
        def task():
            raise RuntimeError("boom")

        checker = BackgroundChecker()
        checker.start(Busy.BUILDING, task)
        assert checker.wait(TIMEOUT)
        assert not checker.busy
        [message] = checker.messages.errors()
        assert message.text == "Unexpected error occurred: boom"

    def test_wait_without_work(self):
        assert BackgroundChecker().wait(0)


class TestTasks:
    def test_validate(self, sample_dir):
        graph = MutableGraph.build(scan_directory(sample_dir))
        checker = BackgroundChecker()
        checker.validate(graph, RecordingFacade(reject={"third"}))
        assert checker.wait(TIMEOUT)

        errors = checker.messages.errors()
        assert [m.text for m in errors] == ["Rejected third"]
        assert errors[0].path.name == "third.ocafile"
        assert checker.messages.items()[-1].text == "4 file(s) valid"

    def test_build(self, sample_dir, storage_dir):
        planner = BuildPlanner(
            cache=ContentHashCache(storage_dir / "build-cache.json"),
            facade=RecordingFacade(),
        )
        checker = BackgroundChecker()
        checker.build(planner, directory=sample_dir)
        assert checker.wait(TIMEOUT)

        assert checker.messages.errors() == []
        assert len(checker.messages.items()) == 5
        assert checker.messages.last_action is Busy.BUILDING
        assert (storage_dir / "build-cache.json").exists()
