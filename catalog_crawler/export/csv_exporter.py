from __future__ import annotations

import csv
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator

from .aggregator import Document


class CSVExporter:
    """
    Writes one row per product with the same columns as the JSON document.
    """

    _headers = ["Name", "Code", "Description", "Price"]

    def export(self, document: Document, path: str) -> None:
        with self._open(path) as f:
            w = csv.writer(f)
            w.writerow(self._headers)
            for record in document:
                w.writerow([record.get(h, "") for h in self._headers])

    @contextmanager
    def _open(self, path: str) -> Iterator[IO[str]]:
        if path == "-":
            yield sys.stdout
            sys.stdout.flush()
            return
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            yield f
