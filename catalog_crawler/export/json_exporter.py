from __future__ import annotations

import json
import sys
from pathlib import Path

from .aggregator import Document


class JSONExporter:
    def export(self, document: Document, path: str) -> None:
        if path == "-":
            # Two-space indent, UTF-8 text, trailing newline like a streamed encoder.
            sys.stdout.write(json.dumps(document, indent=2, ensure_ascii=False) + "\n")
            sys.stdout.flush()
            return
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2, ensure_ascii=False)
            f.write("\n")
