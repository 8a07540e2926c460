from __future__ import annotations

import argparse
import json
import os

from edurpg.core.config import load_app_config


def main() -> None:
    ap = argparse.ArgumentParser(description="Print the resolved EduRPG config")
    ap.add_argument("--config", default=os.path.join("config", "edurpg.json"))
    args = ap.parse_args()
    loaded = load_app_config(args.config)
    print(json.dumps({"source": loaded.source, "error": loaded.error, "config": loaded.config.model_dump()}, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
