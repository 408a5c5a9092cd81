#!/usr/bin/env python3
"""
Exchange Harness - Test Runner

Runs the suites under tests/suites tier by tier, one pytest process per
test module, and writes a JSON summary per run.

Usage:
    ./tests/run_tests.py --suite unit              # Run unit tests only
    ./tests/run_tests.py --suite integration       # Run integration tests
    ./tests/run_tests.py --tier 0                  # CI Tier 0 (required)
    ./tests/run_tests.py --list                    # List all available tests

Environment Variables:
    TEST_SEED: Master seed for deterministic tokens and payloads (default: 42)
"""

import argparse
import json
import os
import subprocess
import sys
import time
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import List, Dict, Any

# ============================================================================
# Configuration
# ============================================================================

TESTS_ROOT = Path(__file__).parent.absolute()
PROJECT_ROOT = TESTS_ROOT.parent
ARTIFACTS_DIR = TESTS_ROOT / "artifacts"
SUITES_DIR = TESTS_ROOT / "suites"

TIER_0_SUITES = ["unit", "integration"]

SUITE_TIMEOUTS = {
    "unit": 120,
    "integration": 300,
}

MASTER_SEED = int(os.environ.get("TEST_SEED", "42"))

# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class TestResult:
    name: str
    suite: str
    passed: bool
    duration_seconds: float
    output: str = ""
    error: str = ""

@dataclass
class SuiteResult:
    name: str
    tests_run: int
    tests_passed: int
    tests_failed: int
    duration_seconds: float = 0.0
    results: List[TestResult] = field(default_factory=list)

# ============================================================================
# Logging & Output
# ============================================================================

class Colors:
    HEADER = '\033[95m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BOLD = '\033[1m'
    END = '\033[0m'

def log(msg: str, color: str = ""):
    timestamp = datetime.now().strftime("%H:%M:%S")
    if color and sys.stdout.isatty():
        print(f"{color}[{timestamp}] {msg}{Colors.END}", flush=True)
    else:
        print(f"[{timestamp}] {msg}", flush=True)

def log_header(msg: str):
    log(f"\n{'='*60}\n {msg}\n{'='*60}", Colors.HEADER)

def log_pass(msg: str):
    log(f"✓ {msg}", Colors.GREEN)

def log_fail(msg: str):
    log(f"✗ {msg}", Colors.RED)

def log_info(msg: str):
    log(msg, Colors.CYAN)

def log_warn(msg: str):
    log(f"⚠ {msg}", Colors.YELLOW)

# ============================================================================
# Discovery & Execution
# ============================================================================

def discover_tests(suite: str) -> List[Path]:
    """Test modules of a suite in lexicographic order."""
    suite_dir = SUITES_DIR / suite
    if not suite_dir.is_dir():
        return []
    return sorted(suite_dir.glob("test_*.py"))

def list_all_tests() -> Dict[str, List[Path]]:
    return {
        suite_dir.name: discover_tests(suite_dir.name)
        for suite_dir in sorted(SUITES_DIR.iterdir())
        if suite_dir.is_dir()
    }

def run_test(test: Path, suite: str, run_dir: Path, timeout: int) -> TestResult:
    log_info(f"Running {suite}/{test.name}")
    env = dict(os.environ)
    env["TEST_SEED"] = str(MASTER_SEED)
    env["EXCHANGE_HARNESS_ARTIFACTS"] = str(run_dir / suite)
    start = time.time()
    try:
        proc = subprocess.run(
            [sys.executable, "-m", "pytest", str(test), "-q"],
            cwd=PROJECT_ROOT, env=env, capture_output=True, text=True, timeout=timeout
        )
        passed = proc.returncode == 0
        output, error = proc.stdout, proc.stderr
    except subprocess.TimeoutExpired as e:
        passed = False
        output = e.stdout or ""
        error = f"timed out after {timeout}s"
    duration = time.time() - start

    if passed:
        log_pass(f"{test.stem} ({duration:.1f}s)")
    else:
        log_fail(f"{test.stem} ({duration:.1f}s)")
        print(output[-2000:], flush=True)

    return TestResult(test.stem, suite, passed, duration, output, error)

def run_suite(suite_name: str, run_dir: Path) -> SuiteResult:
    log_header(f"Suite: {suite_name}")
    start_time = time.time()
    tests = discover_tests(suite_name)

    if not tests:
        log_warn(f"No tests found in suite: {suite_name}")
        return SuiteResult(suite_name, 0, 0, 0)

    timeout = SUITE_TIMEOUTS.get(suite_name, 300)
    results = [run_test(test, suite_name, run_dir, timeout) for test in tests]
    passed = sum(1 for r in results if r.passed)

    return SuiteResult(
        name=suite_name,
        tests_run=len(results),
        tests_passed=passed,
        tests_failed=len(results) - passed,
        duration_seconds=time.time() - start_time,
        results=results
    )

# ============================================================================
# Artifact Management
# ============================================================================

def create_run_directory() -> Path:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_dir = ARTIFACTS_DIR / "runs" / timestamp
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir

def write_summary(run_dir: Path, suite_results: List[SuiteResult]) -> Dict[str, Any]:
    summary = {
        "timestamp": datetime.now().isoformat(),
        "run_directory": str(run_dir),
        "seed": MASTER_SEED,
        "suites": [asdict(sr) for sr in suite_results],
        "totals": {
            "tests_run": sum(sr.tests_run for sr in suite_results),
            "tests_passed": sum(sr.tests_passed for sr in suite_results),
            "tests_failed": sum(sr.tests_failed for sr in suite_results),
            "duration_seconds": sum(sr.duration_seconds for sr in suite_results),
        }
    }
    summary_file = run_dir / "summary.json"
    with open(summary_file, "w") as f:
        json.dump(summary, f, indent=2)
    log_info(f"Summary written to: {summary_file}")
    return summary

def print_final_summary(summary: Dict):
    log_header("TEST RUN COMPLETE")

    print(f"\n{'Suite':<25} {'Passed':<10} {'Failed':<10} {'Duration':<10}", flush=True)
    print("-" * 55, flush=True)
    for suite in summary["suites"]:
        print(f"{suite['name']:<25} {suite['tests_passed']:<10} {suite['tests_failed']:<10} "
              f"{suite['duration_seconds']:.1f}s", flush=True)
    print("-" * 55, flush=True)

    totals = summary["totals"]
    print(f"{'TOTAL':<25} {totals['tests_passed']:<10} {totals['tests_failed']:<10} "
          f"{totals['duration_seconds']:.1f}s\n", flush=True)

    if totals["tests_failed"] == 0:
        log_pass(f"All {totals['tests_run']} test modules passed!")
    else:
        log_fail(f"{totals['tests_failed']}/{totals['tests_run']} test modules failed")

# ============================================================================
# Main Entry Point
# ============================================================================

def main():
    parser = argparse.ArgumentParser(description="Exchange Harness - Test Runner")
    parser.add_argument("--suite", type=str, help="Run specific suite")
    parser.add_argument("--tier", type=int, choices=[0], help="Run CI tier")
    parser.add_argument("--list", action="store_true", help="List all tests")
    args = parser.parse_args()

    if args.list:
        print("\nAvailable Tests:", flush=True)
        print("=" * 60, flush=True)
        for suite, tests in list_all_tests().items():
            print(f"\n{Colors.BOLD}{suite}{Colors.END} ({len(tests)} modules)", flush=True)
            for test in tests:
                print(f"  - {test.stem}", flush=True)
        return 0

    if args.suite:
        suites_to_run = [args.suite]
    elif args.tier == 0:
        suites_to_run = TIER_0_SUITES
    else:
        parser.print_help()
        return 1

    run_dir = create_run_directory()
    log_header("Exchange Harness Test Runner")
    log_info(f"Run directory: {run_dir}")
    log_info(f"Suites: {', '.join(suites_to_run)}")
    log_info(f"Seed: {MASTER_SEED}")

    suite_results = [run_suite(suite, run_dir) for suite in suites_to_run]
    summary = write_summary(run_dir, suite_results)
    print_final_summary(summary)

    return 1 if summary["totals"]["tests_failed"] else 0

if __name__ == "__main__":
    sys.exit(main())
