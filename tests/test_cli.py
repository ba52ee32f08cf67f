import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from unittest import mock

from jobfeed import cli
from jobfeed.core.dedupe import DedupCache


def fake_adapter():
    adapter = mock.Mock()
    adapter.name = "arbeitnow"
    adapter.configured = True
    adapter.search.return_value = []
    return adapter


class AcquireCommandTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.plan = os.path.join(self.tmp.name, "plan.json")
        with open(self.plan, "w", encoding="utf-8") as f:
            json.dump({"queries": ["graduate"]}, f)
        env = {"JOBFEED_REQUEST_DELAY": "0", "JOBFEED_SWEEP_INTERVAL_HOURS": "6"}
        patcher = mock.patch.dict(os.environ, env)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(self.tmp.cleanup)

    def run_cli(self, *extra):
        argv = ["acquire", "--plan", self.plan, "--providers", "arbeitnow", "--dry-run", *extra]
        out = io.StringIO()
        with redirect_stdout(out):
            code = cli.main(argv)
        return code, out.getvalue()

    def test_repeating_acquire_runs_sweeper_and_stops_it(self):
        adapter = fake_adapter()
        with mock.patch("jobfeed.providers.get", return_value=adapter), \
                mock.patch.object(DedupCache, "start_sweeper") as start, \
                mock.patch.object(DedupCache, "stop_sweeper") as stop, \
                mock.patch("jobfeed.cli.time.sleep") as sleep:
            code, out = self.run_cli("--every", "2", "--cycles", "2")
        self.assertEqual(code, 0)
        start.assert_called_once_with(6 * 3600)
        stop.assert_called_once_with()
        sleep.assert_called_once_with(2 * 3600)
        self.assertEqual(adapter.search.call_count, 2)
        self.assertEqual(out.count("Dry run: 0 new jobs"), 2)

    def test_single_acquire_does_not_start_sweeper(self):
        adapter = fake_adapter()
        with mock.patch("jobfeed.providers.get", return_value=adapter), \
                mock.patch.object(DedupCache, "start_sweeper") as start:
            code, out = self.run_cli()
        self.assertEqual(code, 0)
        start.assert_not_called()
        self.assertIn("arbeitnow: units=1/1", out)

    def test_unknown_provider(self):
        out = io.StringIO()
        with redirect_stdout(out):
            code = cli.main(["acquire", "--plan", self.plan, "--providers", "nope"])
        self.assertEqual(code, 2)
        self.assertIn("Unknown providers: nope", out.getvalue())


if __name__ == "__main__":
    unittest.main()
