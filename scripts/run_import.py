"""
Run one model import from a delimited file on the CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path

from planning_connector.config import get_import_defaults
from planning_connector.domain.model_import import OutcomeStatus
from planning_connector.exceptions import ConfigurationError
from planning_connector.services.import_service import get_import_service


def main() -> int:
    defaults = get_import_defaults()
    parser = argparse.ArgumentParser(description="Upload a delimited file and run a model import action.")
    parser.add_argument("file", type=Path, help="Delimited file; the first record is the header row.")
    parser.add_argument("--workspace-id", required=True)
    parser.add_argument("--model-id", required=True)
    parser.add_argument("--import-id", required=True)
    parser.add_argument("--separator", default=defaults.column_separator, help="Column separator character.")
    parser.add_argument("--quote", default=defaults.quote_char, help="Text delimiter (quote) character.")
    parser.add_argument("--encoding", default="utf-8-sig")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    data = args.file.read_text(encoding=args.encoding)
    try:
        outcome = get_import_service().run_import(
            data=data,
            workspace_id=args.workspace_id,
            model_id=args.model_id,
            import_id=args.import_id,
            column_separator=args.separator.replace("\\t", "\t"),
            quote_char=args.quote,
        )
    except ConfigurationError as exc:
        parser.error(str(exc))

    dump = outcome.failure_dump
    payload = {
        "status": outcome.status.value,
        "import_id": outcome.import_id,
        "rows_processed": outcome.rows_processed,
        "response_message": outcome.response_message,
        "failure_dump_task_id": dump.task_id if dump is not None else None,
        "server_file_id": outcome.server_file.file_id if outcome.server_file is not None else None,
    }
    print(json.dumps(payload, indent=2))
    return 1 if outcome.status is OutcomeStatus.FAILURE else 0


if __name__ == "__main__":
    raise SystemExit(main())
