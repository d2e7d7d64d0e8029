#!/usr/bin/env python3
"""
Command line entry point: inject a prelude into a compiled contract artifact.

    python -m evm_prelude MyContract 0x5860...
"""
import argparse
import json
import os
import sys
from typing import List, Optional

import structlog

from .artifacts import DEFAULT_BUILD_DIR, ArtifactStore
from .core.errors import InternalInvariantError, PreludeError
from .logging_config import configure_logging
from .transform import DEFAULT_METADATA_LENGTH, transform

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_INTERNAL = 1
EXIT_REJECTED = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Insert a prelude before a contract's runtime code, fixing jumps and code copies"
    )
    parser.add_argument("contract_name", help="Name of the compiled contract artifact")
    parser.add_argument("prelude", help="Prelude bytecode as a 0x-prefixed hex string")
    parser.add_argument(
        "--build-dir",
        default=os.environ.get("EVM_PRELUDE_BUILD_DIR", DEFAULT_BUILD_DIR),
        help=f"Directory holding contracts/ and injected/ (default: {DEFAULT_BUILD_DIR})",
    )
    parser.add_argument(
        "--metadata-length",
        type=int,
        default=DEFAULT_METADATA_LENGTH,
        help="Bytes of trailing compiler metadata on deployed bytecode",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "WARNING"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: WARNING)",
    )
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument(
        "--json-logs", action="store_true", help="Render log lines as JSON instead of console text"
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level, json_logs=args.json_logs)

    try:
        init_code, runtime_code = transform(
            args.contract_name,
            args.prelude,
            store=ArtifactStore(args.build_dir),
            metadata_length=args.metadata_length,
        )
    except InternalInvariantError as e:
        logger.critical("Analyzer invariant violated", error=str(e))
        return EXIT_INTERNAL
    except PreludeError as e:
        logger.error("Prelude injection failed", error=str(e), kind=type(e).__name__)
        return EXIT_REJECTED

    if args.json:
        print(json.dumps({"bytecode": init_code, "deployedBytecode": runtime_code}, indent=2))
    else:
        print("INIT CODE:", init_code)
        print()
        print("RUNTIME CODE:", runtime_code)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
