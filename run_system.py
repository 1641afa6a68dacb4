#!/usr/bin/env python3
"""
Recital Coach Launcher

This script provides an easy way to launch different components of the system.
"""

import sys
import argparse
import subprocess
import logging
import os
from pathlib import Path

SRC_DIR = Path(__file__).parent / "src"
sys.path.insert(0, str(SRC_DIR))

from recital_coach import config

# Setup logging
logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
logger = logging.getLogger(__name__)


def _subprocess_env():
    env = os.environ.copy()
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC_DIR), env.get("PYTHONPATH")]))
    return env


def run_fastapi_server():
    """Launch the FastAPI backend server."""
    logger.info("Starting FastAPI backend server...")
    try:
        subprocess.run([sys.executable, "-m", "recital_coach.fastapi_server"], check=True, env=_subprocess_env())
    except subprocess.CalledProcessError as e:
        logger.error(f"Failed to start FastAPI server: {e}")
        return False
    except KeyboardInterrupt:
        logger.info("FastAPI server stopped by user")
    return True


def run_tests():
    """Run the test suite."""
    logger.info("Running tests...")
    try:
        subprocess.run([sys.executable, "-m", "unittest", "discover", "-p", "test_*.py"], check=True, env=_subprocess_env())
        logger.info("All tests passed!")
        return True
    except subprocess.CalledProcessError as e:
        logger.error(f"Tests failed: {e}")
        return False


def demo_evaluation(reference: str, transcript: str):
    """Score a transcript against reference text and print the result."""
    from recital_coach.alignment import DiffType
    from recital_coach.recital_session import evaluate_recital, format_summary
    from recital_coach.text_processing import split_paragraph_into_sentences

    logger.info("Running demo evaluation...")

    markers = {DiffType.CORRECT: "", DiffType.INCORRECT: "-", DiffType.EXTRA: "+"}

    result = evaluate_recital(reference, transcript)

    print("\n" + "=" * 50)
    print("RECITAL RESULTS")
    print("=" * 50)
    for index, sentence in enumerate(split_paragraph_into_sentences(reference), 1):
        print(f"{index}. {sentence}")
    print(f"\nTranscript: {transcript}")
    print("Diff: " + " ".join(f"{markers[entry.type]}{entry.text}" for entry in result.diff))
    print(f"Similarity: {result.similarity:.1f}%")
    print("\n" + format_summary(result))
    return True


def main():
    parser = argparse.ArgumentParser(
        description="Recital Coach Launcher",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_system.py fastapi         # Launch API server
  python run_system.py test            # Run tests
  python run_system.py demo            # Run demo evaluation
        """
    )

    parser.add_argument(
        "component",
        choices=["fastapi", "test", "demo"],
        help="Component to launch"
    )
    parser.add_argument(
        "--reference",
        default="The quick brown fox jumps over the lazy dog. It was a sunny day.",
        help="Reference text for the demo"
    )
    parser.add_argument(
        "--transcript",
        default="the quick brown fox jumped over the dog it was a very sunny day",
        help="Transcript for the demo"
    )

    args = parser.parse_args()

    # Check if we're in the right directory
    if not Path("src/recital_coach").exists():
        logger.error("Please run this script from the project root directory")
        sys.exit(1)

    success = False

    if args.component == "fastapi":
        success = run_fastapi_server()
    elif args.component == "test":
        success = run_tests()
    elif args.component == "demo":
        success = demo_evaluation(args.reference, args.transcript)

    if not success:
        sys.exit(1)

    logger.info("Operation completed successfully!")


if __name__ == "__main__":
    main()
