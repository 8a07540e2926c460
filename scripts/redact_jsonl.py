from __future__ import annotations

import argparse
import json
import sys
from typing import Optional, TextIO

from edurpg.core.redaction import RedactionOptions, safe_payload


def redact_stream(src: TextIO, dst: TextIO, *, options: Optional[RedactionOptions] = None) -> int:
    """
    Re-redact a JSONL export line by line. Lines that are not JSON are
    treated as plain text. Returns the number of lines written.
    """
    n = 0
    for line in src:
        line = line.rstrip("\n")
        if not line.strip():
            continue
        try:
            obj = json.loads(line)
        except ValueError:
            obj = line
        dst.write(json.dumps(safe_payload(obj, options), ensure_ascii=False, default=str) + "\n")
        n += 1
    return n


def main() -> int:
    ap = argparse.ArgumentParser(description="Redact a JSONL log file before sharing it")
    ap.add_argument("path", help="Input JSONL file.")
    ap.add_argument("--out", default=None, help="Output file (default: stdout).")
    ap.add_argument("--max-depth", type=int, default=6)
    args = ap.parse_args()

    opts = RedactionOptions(max_depth=args.max_depth)
    with open(args.path, "r", encoding="utf-8") as src:
        if args.out:
            with open(args.out, "w", encoding="utf-8") as dst:
                redact_stream(src, dst, options=opts)
        else:
            redact_stream(src, sys.stdout, options=opts)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
