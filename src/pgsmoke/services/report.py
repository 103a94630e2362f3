"""JSON run report for one provision/probe/teardown cycle."""

import json
import os
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class RunReportService:
    """Tracks finished steps, container state transitions and teardown errors.

    Nothing is written to disk when ``report_file`` is ``None``; the report is
    still kept in memory so callers can inspect it.
    """

    def __init__(self, report_file: Optional[str], logger):
        self.report_file = report_file
        self.logger = logger
        self._clock: Dict[str, float] = {}
        self.report: Dict[str, Any] = {
            "run_id": None,
            "status": "running",
            "started_at": None,
            "finished_at": None,
            "metadata": {},
            "steps": [],
            "container": {"id": None, "states": []},
            "teardown": {"status": None, "errors": []},
            "error": None,
        }

    def start_run(self, run_id: str, metadata: Dict[str, Any]):
        self._clock["run"] = time.monotonic()
        self.report.update(run_id=run_id, started_at=self._now(), metadata=dict(metadata))
        self.write()

    def add_metadata(self, key: str, value: Any):
        self.report["metadata"][key] = value
        self.write()

    def step_started(self, step_name: str):
        self._clock[step_name] = time.monotonic()

    def step_finished(self, step_name: str, status: str, error: Optional[str] = None):
        self.report["steps"].append(
            {
                "name": step_name,
                "status": status,
                "seconds": self._elapsed(step_name),
                "error": error,
            }
        )
        self.write()

    def container_state(self, container_id: str, state: str):
        container = self.report["container"]
        container["id"] = container_id
        container["states"].append({"state": state, "at": self._now()})
        self.write()

    def record_teardown(self, errors: List[str]):
        self.report["teardown"] = {
            "status": "failed" if errors else "success",
            "errors": list(errors),
        }
        self.write()

    def finalize(self, status: str, error: Optional[str] = None):
        self.report.update(
            status=status,
            finished_at=self._now(),
            seconds=self._elapsed("run"),
            error=error,
        )
        self.write()

    def write(self):
        if not self.report_file:
            return

        temp_path = f"{self.report_file}.tmp"
        try:
            os.makedirs(os.path.dirname(self.report_file) or ".", exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as file_obj:
                json.dump(self.report, file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, self.report_file)
        except OSError as exc:
            self.logger.warning("Could not write report file '%s': %s", self.report_file, exc)

    def _elapsed(self, key: str) -> Optional[float]:
        started = self._clock.pop(key, None)
        if started is None:
            return None
        return round(time.monotonic() - started, 3)

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()
