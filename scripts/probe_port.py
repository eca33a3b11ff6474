"""
Diagnostic script for the endpoint probe and process locator.
Run this to see what the monitor sees for a given port.

Usage:
    python scripts/probe_port.py 5173
    python scripts/probe_port.py --detect
"""

import argparse
import logging
import os
import sys
import time

# Add parent directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from packages.core.monitor.ownership import classify_ownership
from packages.core.monitor.port_detect import detect_port
from packages.core.monitor.probe import probe
from packages.core.monitor.process_locator import default_locator
from packages.core.monitor.types import DEFAULT_CANDIDATE_PORTS

logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def main():
    parser = argparse.ArgumentParser(description="Probe a dev server port")
    parser.add_argument("port", nargs="?", type=int)
    parser.add_argument("--host", default="localhost")
    parser.add_argument("--timeout-ms", type=int, default=2000)
    parser.add_argument("--interval", type=float, default=1.0)
    parser.add_argument("--detect", action="store_true", help="scan the default candidate ports once")
    parser.add_argument("--root", action="append", default=[], help="workspace root for the ownership check")
    args = parser.parse_args()

    print("=" * 60)
    print("Dev Server Probe")
    print("=" * 60)

    candidates = default_locator().locate_candidates()
    print(f"Dev server processes found: {len(candidates)}")
    for c in candidates:
        print(f"  pid={c.pid} cwd={c.working_directory or '?'}  {c.command_line[:80]}")
    if args.root:
        print(f"Ownership for {args.root}: {classify_ownership(candidates, args.root).value}")
    print()

    if args.detect:
        port = detect_port(DEFAULT_CANDIDATE_PORTS, host=args.host)
        print(f"Detected port: {port if port is not None else 'none'}")
        return 0 if port is not None else 1

    if args.port is None:
        parser.error("port is required unless --detect is given")

    print(f"Probing http://{args.host}:{args.port}/ (press Ctrl+C to stop)...")
    print("-" * 60)

    try:
        count = 0
        while True:
            count += 1
            started = time.monotonic()
            result = probe(args.host, args.port, args.timeout_ms)
            took_ms = (time.monotonic() - started) * 1000
            if result.responding:
                print(f"[{count:4d}] UP   status={result.status_code} ({took_ms:.0f}ms)")
            else:
                cause = result.error or f"status {result.status_code}"
                print(f"[{count:4d}] DOWN {type(result.error).__name__ if result.error else 'HTTP'}: {cause} ({took_ms:.0f}ms)")
            time.sleep(args.interval)
    except KeyboardInterrupt:
        print()
        print("-" * 60)
        print("Stopped by user")

    return 0


if __name__ == "__main__":
    sys.exit(main())
