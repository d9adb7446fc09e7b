"""
Rewrite report utilities.
Stores an append-only JSON Lines file with one record per replaced URL.
"""

import json
import os
import time
from dataclasses import dataclass, asdict, field
from typing import Dict, Any, Iterable


DEFAULT_REPORT_NAME = "rewrite_report.jsonl"


@dataclass
class ReportRecord:
    source: str      # File path or page URL that was rewritten
    original: str    # Canonical local path
    target: str      # CDN URL
    timestamp: float = field(default_factory=time.time)


class RewriteReport:
    def __init__(self, path: str):
        if os.path.isdir(path):
            path = os.path.join(path, DEFAULT_REPORT_NAME)
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        self.path = path

    def append(self, rec: ReportRecord) -> None:
        with open(self.path, 'a', encoding='utf-8') as f:
            f.write(json.dumps(asdict(rec), ensure_ascii=False) + "\n")

    def append_result(self, source: str, replaced_urls: Dict[str, str]) -> int:
        for original, target in replaced_urls.items():
            self.append(ReportRecord(source=source, original=original, target=target))
        return len(replaced_urls)

    def iter_records(self) -> Iterable[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return
        with open(self.path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    yield json.loads(line)
                except ValueError:
                    continue

    def targets_by_original(self) -> Dict[str, str]:
        """Latest CDN URL recorded for each original path."""
        latest = {}
        for rec in self.iter_records():
            if rec.get('original') and rec.get('target'):
                latest[rec['original']] = rec['target']
        return latest
