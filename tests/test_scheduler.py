import threading
import time
import unittest

from passive_agent.errors import CheckError, InvalidTimeoutError
from passive_agent.models import AgentConfig
from passive_agent.registry import PluginRegistry
from passive_agent.scheduler import (
    TIMEOUT_MESSAGE,
    CallerClass,
    LocalScheduler,
    parse_item_timeout,
)


class ParseItemTimeoutTests(unittest.TestCase):
    def test_valid_values(self) -> None:
        cases = [("", 3), ("1", 1), ("3", 3), ("30s", 30), ("2m", 120), ("600", 600), (" 5 ", 5)]
        for raw, expected in cases:
            with self.subTest(raw=raw):
                self.assertEqual(parse_item_timeout(raw, 3), expected)

    def test_invalid_values(self) -> None:
        for raw in ["0", "601", "11m", "1h", "-1", "abc", "1.5", "s", "10x", "²"]:
            with self.subTest(raw=raw):
                with self.assertRaises(InvalidTimeoutError):
                    parse_item_timeout(raw, 3)


class LocalSchedulerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = PluginRegistry(
            AgentConfig(
                aliases={"ping": "agent.ping", "pong": "echo", "fixed": "echo[fixed]"},
                deny_keys=["echo[secret*]"],
            )
        )
        self.registry.register("agent.ping", lambda params, timeout_s: "1")
        self.registry.register("echo", lambda params, timeout_s: ",".join(params))
        self.registry.register("flag", lambda params, timeout_s: params == ["on"])
        self.scheduler = LocalScheduler(self.registry, default_timeout=3, max_workers=4)

    def tearDown(self) -> None:
        self.scheduler.shutdown()

    def test_runs_plugin_with_params(self) -> None:
        self.assertEqual(self.scheduler.execute("agent.ping", 3, CallerClass.PASSIVE), "1")
        self.assertEqual(self.scheduler.execute("echo[a,b]", 3, CallerClass.PASSIVE), "a,b")

    def test_booleans_become_one_or_zero(self) -> None:
        self.assertEqual(self.scheduler.execute("flag[on]", 3, CallerClass.LOCAL), "1")
        self.assertEqual(self.scheduler.execute("flag[off]", 3, CallerClass.LOCAL), "0")

    def test_unknown_metric(self) -> None:
        with self.assertRaises(CheckError) as ctx:
            self.scheduler.execute("no.such[1]", 3, CallerClass.PASSIVE)
        self.assertEqual(ctx.exception.message, "Unknown metric no.such")

    def test_aliases(self) -> None:
        self.assertEqual(self.scheduler.execute("ping", 3, CallerClass.PASSIVE), "1")
        self.assertEqual(self.scheduler.execute("pong[x]", 3, CallerClass.PASSIVE), "x")
        self.assertEqual(self.scheduler.execute("fixed", 3, CallerClass.PASSIVE), "fixed")

    def test_denied_key_looks_unknown(self) -> None:
        with self.assertRaises(CheckError) as ctx:
            self.scheduler.execute("echo[secret,1]", 3, CallerClass.PASSIVE)
        self.assertEqual(ctx.exception.message, "Unknown metric echo")
        self.assertEqual(self.scheduler.execute("echo[public]", 3, CallerClass.PASSIVE), "public")

    def test_plugin_exception_becomes_check_error(self) -> None:
        def broken(params, timeout_s):
            raise ValueError("disk not mounted")

        self.registry.register("broken", broken)
        with self.assertRaises(CheckError) as ctx:
            self.scheduler.execute("broken", 3, CallerClass.PASSIVE)
        self.assertEqual(ctx.exception.message, "disk not mounted")

    def test_plugin_check_error_passes_through(self) -> None:
        def picky(params, timeout_s):
            raise CheckError("Invalid first parameter.")

        self.registry.register("picky", picky)
        with self.assertRaises(CheckError) as ctx:
            self.scheduler.execute("picky[x]", 3, CallerClass.PASSIVE)
        self.assertEqual(ctx.exception.message, "Invalid first parameter.")

    def test_timeout(self) -> None:
        release = threading.Event()
        self.registry.register("slow", lambda params, timeout_s: release.wait(5))

        start = time.perf_counter()
        with self.assertRaises(CheckError) as ctx:
            self.scheduler.execute("slow", 0.1, CallerClass.PASSIVE)
        elapsed = time.perf_counter() - start
        release.set()

        self.assertEqual(ctx.exception.message, TIMEOUT_MESSAGE)
        self.assertLess(elapsed, 2)

    def test_same_key_runs_one_at_a_time(self) -> None:
        active = []
        peak = []
        guard = threading.Lock()

        def tracked(params, timeout_s):
            with guard:
                active.append(1)
                peak.append(len(active))
            time.sleep(0.05)
            with guard:
                active.pop()
            return "ok"

        self.registry.register("tracked", tracked)
        results = []
        threads = [
            threading.Thread(
                target=lambda: results.append(self.scheduler.execute("tracked", 3, CallerClass.PASSIVE))
            )
            for _ in range(4)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(results, ["ok"] * 4)
        self.assertEqual(max(peak), 1)

    def test_key_locks_dropped_after_execution(self) -> None:
        def broken(params, timeout_s):
            raise ValueError("boom")

        self.registry.register("broken", broken)
        for i in range(200):
            self.scheduler.execute(f"echo[{i}]", 3, CallerClass.PASSIVE)
        with self.assertRaises(CheckError):
            self.scheduler.execute("broken[1]", 3, CallerClass.PASSIVE)

        self.assertEqual(self.scheduler._key_locks, {})

    def test_key_lock_kept_while_waiting_then_dropped(self) -> None:
        release = threading.Event()
        self.registry.register("held", lambda params, timeout_s: release.wait(5))

        with self.assertRaises(CheckError):
            self.scheduler.execute("held", 0.1, CallerClass.PASSIVE)
        self.assertIn("held", self.scheduler._key_locks)

        release.set()
        deadline = time.monotonic() + 2
        while self.scheduler._key_locks and time.monotonic() < deadline:
            time.sleep(0.01)
        self.assertEqual(self.scheduler._key_locks, {})

    def test_stats_count_by_caller(self) -> None:
        self.scheduler.execute("agent.ping", 3, CallerClass.PASSIVE)
        self.scheduler.execute("agent.ping", 3, CallerClass.HTTP)
        with self.assertRaises(CheckError):
            self.scheduler.execute("missing", 3, CallerClass.PASSIVE)

        self.assertEqual(
            self.scheduler.stats(),
            {"passive.ok": 1, "http.ok": 1, "passive.failed": 1},
        )

    def test_parse_timeout_uses_scheduler_default(self) -> None:
        self.assertEqual(self.scheduler.parse_timeout(""), 3)
        self.assertEqual(self.scheduler.parse_timeout("10s"), 10)


if __name__ == "__main__":
    unittest.main()
