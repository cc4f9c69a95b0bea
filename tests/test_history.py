import json
import pathlib
import tempfile
import unittest
from datetime import datetime, timedelta

from quakestream.core.models import EventRecord
from quakestream.data.history import HistoryStore

T0 = datetime(2024, 1, 1, 9, 30, 15, 123456)


def _event(i: int) -> EventRecord:
    return EventRecord(
        timestamp=T0 + timedelta(minutes=i),
        max_intensity=0.5 + i / 1000.0,
        max_gal=10.0 + i,
        max_lpgm_class=i % 5,
        max_sva=1.5 * i,
    )


class HistoryStoreTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = pathlib.Path(self._tmp.name)
        self.path = self.root / "history.json"

    def tearDown(self):
        self._tmp.cleanup()

    def test_capacity_keeps_newest_first(self):
        with HistoryStore(self.path, capacity=200) as store:
            for i in range(250):
                store.record(_event(i))

            events = store.snapshot()
            self.assertEqual(len(events), 200)
            self.assertEqual(events[0], _event(249))
            self.assertEqual(events[-1], _event(50))

    def test_history_survives_reload(self):
        with HistoryStore(self.path, capacity=10) as store:
            for i in range(3):
                store.record(_event(i))

        data = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(len(data), 3)
        self.assertEqual(data[0]["max_gal"], 12.0)

        with HistoryStore(self.path, capacity=10) as reloaded:
            self.assertEqual(reloaded.snapshot(), (_event(2), _event(1), _event(0)))

    def test_reload_truncates_to_capacity(self):
        with HistoryStore(self.path, capacity=10) as store:
            for i in range(10):
                store.record(_event(i))

        with HistoryStore(self.path, capacity=4) as small:
            self.assertEqual([e.max_gal for e in small.snapshot()], [19.0, 18.0, 17.0, 16.0])

    def test_missing_empty_or_corrupt_file_means_no_history(self):
        with HistoryStore(self.path) as store:
            self.assertEqual(store.snapshot(), ())

        for content in ("", "   \n", "{not json", '{"a": 1}', "[1, 2, 3]"):
            self.path.write_text(content, encoding="utf-8")
            with HistoryStore(self.path) as store:
                self.assertEqual(store.snapshot(), ())

    def test_malformed_entries_are_skipped(self):
        good = {
            "timestamp": T0.isoformat(),
            "max_intensity": 1.0,
            "max_gal": 2.0,
            "max_lpgm_class": 1,
            "max_sva": 3.0,
        }
        self.path.write_text(json.dumps([good, {"timestamp": "yesterday"}]), encoding="utf-8")
        with HistoryStore(self.path) as store:
            self.assertEqual(len(store), 1)
            self.assertEqual(store.latest().max_sva, 3.0)

    def test_write_failure_does_not_reach_caller(self):
        blocker = self.root / "not_a_dir"
        blocker.write_text("x", encoding="utf-8")
        store = HistoryStore(blocker / "history.json")
        try:
            store.record(_event(1))
            store.flush(timeout=5.0)
            self.assertEqual(store.write_failures, 1)
            self.assertEqual(len(store), 1)
        finally:
            store.close()

    def test_export_three_events(self):
        target = self.root / "out" / "export.csv"
        with HistoryStore(self.path) as store:
            for i in range(3):
                store.record(_event(i))
            result = store.export(store.snapshot(), target).result(timeout=5.0)

        self.assertEqual(result, target)
        lines = target.read_text(encoding="utf-8").splitlines()
        self.assertEqual(len(lines), 4)
        self.assertEqual(lines[0], "Timestamp,MaxIntensity,MaxGal,MaxLPGMClass,MaxSva")
        self.assertEqual(lines[1], "2024-01-01 09:32:15.123,0.502,12.00,2,3.00")
        self.assertEqual(lines[3], "2024-01-01 09:30:15.123,0.500,10.00,0,0.00")

    def test_export_failure_is_surfaced(self):
        blocker = self.root / "file"
        blocker.write_text("x", encoding="utf-8")
        with HistoryStore(self.path) as store:
            store.record(_event(0))
            future = store.export_current(blocker / "export.csv")
            with self.assertRaises(OSError):
                future.result(timeout=5.0)

    def test_clear_persists_empty_history(self):
        with HistoryStore(self.path) as store:
            store.record(_event(0))
            store.clear()
        self.assertEqual(json.loads(self.path.read_text(encoding="utf-8")), [])


if __name__ == "__main__":
    unittest.main()
