#!/usr/bin/env python3
"""
Test runner for the retail demand forecasting demo.
Runs the pytest suites by name; with no flags every suite runs.
"""

import argparse
import subprocess
import sys
import time

COVERED_MODULES = [
    "ts_core", "data_utils", "data_io", "plot_utils",
    "aws_clients", "s3_storage", "sagemaker_jobs", "bedrock_chat",
]

# name -> (description, pytest arguments)
SUITES = {
    "basic": ("Engine, import and presentation tests", ["tests/", "-m", "not performance"]),
    "edge_cases": ("Edge case tests", ["tests/test_edge_cases.py", "-m", "edge_case"]),
    "sample_files": ("Generated sample file tests", ["tests/test_sample_files.py"]),
    "aws": ("AWS integration tests (fake clients)", ["tests/test_aws_services.py"]),
    "performance": ("Performance tests", ["tests/test_performance.py", "-m", "performance"]),
}


def run_pytest(args, description):
    cmd = [sys.executable, "-m", "pytest", "-v", *args]
    print(f"\n{'='*60}\n{description}\n$ {' '.join(cmd)}\n{'='*60}")
    start_time = time.time()
    result = subprocess.run(cmd)
    elapsed = time.time() - start_time
    if result.returncode == 0:
        print(f"✅ {description} passed in {elapsed:.2f}s")
    else:
        print(f"❌ {description} failed after {elapsed:.2f}s (exit code {result.returncode})")
    return result.returncode == 0


def run_coverage():
    cov_args = [f"--cov={m}" for m in COVERED_MODULES]
    return run_pytest(["tests/", *cov_args, "--cov-report=term", "--cov-report=html"], "All tests with coverage")


def main():
    parser = argparse.ArgumentParser(description="Test runner for the retail demand forecasting demo")
    for name, (description, _) in SUITES.items():
        parser.add_argument(f"--{name.replace('_', '-')}", dest=name, action="store_true", help=description)
    parser.add_argument("--coverage", action="store_true", help="Run all tests with coverage (needs pytest-cov)")
    args = parser.parse_args()

    selected = [name for name in SUITES if getattr(args, name)]
    if not selected and not args.coverage:
        selected = list(SUITES)

    success = all([run_pytest(SUITES[name][1], SUITES[name][0]) for name in selected])
    if args.coverage:
        success &= run_coverage()

    print("\n🎉 All selected suites passed!" if success else "\n💥 Some suites failed!")
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
