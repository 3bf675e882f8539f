import os
import sys
import argparse
import subprocess
from pathlib import Path
import logging

logger = logging.getLogger(__name__)


def set_threads_env(n: int | None) -> None:
    """
    Set thread env vars for NUMBA/OMP/MKL/OPENBLAS.

    If n is None: do nothing (use whatever the system/default chooses).
    """
    if n is None:
        return
    t = str(int(n))
    for var in (
        "NUMBA_NUM_THREADS",
        "OMP_NUM_THREADS",
        "MKL_NUM_THREADS",
        "OPENBLAS_NUM_THREADS",
    ):
        os.environ[var] = t


def discover_test_files(root: Path, suite: str | None = None) -> list[Path]:
    """
    Collect the test modules of one suite (basis/, operators/) or of all of them.

    Every first-level subfolder of `root` is a suite and every test*.py inside it
    is a standalone test module exposing main().
    """
    if suite is not None:
        return sorted((root / suite).glob("test*.py"))
    tests: list[Path] = []
    for sub in sorted(root.iterdir()):
        if not sub.is_dir() or sub.name.startswith((".", "__")):
            continue
        tests.extend(sorted(sub.glob("test*.py")))
    return tests


def run_one_test(test_path: Path, env: dict, use_pytest: bool) -> int:
    """Run one test module in a subprocess and return its exit code."""
    logger.info(f"=== {test_path.relative_to(test_path.parents[1])} ===")
    if use_pytest:
        cmd = [sys.executable, "-m", "pytest", "-q", str(test_path)]
    else:
        cmd = [sys.executable, str(test_path)]
    return subprocess.run(cmd, env=env).returncode


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    # ----------------------------------------------------------------------------
    parser = argparse.ArgumentParser(description="Run the edhub validation suites.")
    threads_msg = "Threads for NUMBA/OMP/MKL/OPENBLAS. Default: system/default."
    parser.add_argument("--threads", type=int, default=None, help=threads_msg)
    suite_msg = "Run only one suite (basis or operators). If omitted, run all."
    parser.add_argument("--suite", type=str, default=None, help=suite_msg)
    pytest_msg = "Run each module through pytest instead of its main()."
    parser.add_argument("--pytest", action="store_true", help=pytest_msg)
    args = parser.parse_args()
    # ----------------------------------------------------------------------------
    # Child processes read the thread variables at import time
    set_threads_env(args.threads)
    env = os.environ.copy()
    root = Path(__file__).resolve().parent
    if args.suite is not None and not (root / args.suite).is_dir():
        logger.info(f"Suite not found: {root / args.suite}")
        return 2
    tests = discover_test_files(root, args.suite)
    if not tests:
        logger.info("No validation tests found.")
        return 2
    failed = [path for path in tests if run_one_test(path, env, args.pytest) != 0]
    # ----------------------------------------------------------------------------
    logger.info("====================================================")
    if failed:
        for path in failed:
            logger.info(f"FAILED: {path.relative_to(root)}")
        logger.info(f"FAILED: {len(failed)}/{len(tests)} test modules")
        return 1
    logger.info(f"ALL PASSED: {len(tests)} test modules")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
