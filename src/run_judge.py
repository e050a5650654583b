import argparse
import json
import logging
import os
import sys
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from tqdm import tqdm

from practice_judge import (
    DirectoryProblemStore,
    InMemorySimilarityCorpus,
    InMemorySubmissionStore,
    Judge,
    JudgeConfig,
    JsonSubmissionStore,
    Language,
    PlagiarismScreener,
    RemoteExecutor,
    SubmissionOutcome,
    Submitter,
    SubprocessExecutor,
)

LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def load_config(path: Optional[str]) -> JudgeConfig:
    """File settings first, then ``PRACTICE_JUDGE_*`` environment overrides."""
    base = JudgeConfig.from_file(path) if path else None
    return JudgeConfig.from_env(base=base)


def build_executor(args: argparse.Namespace):
    if getattr(args, "executor_url", None):
        LOGGER.info("Using remote executor at %s", args.executor_url)
        return RemoteExecutor(args.executor_url)
    return SubprocessExecutor()


def build_submitter(problem_store, executor, config: JudgeConfig, submissions_file: Optional[str] = None) -> Submitter:
    screener = PlagiarismScreener(
        InMemorySimilarityCorpus(),
        block_threshold=config.plagiarism_block_threshold,
        warn_threshold=config.plagiarism_warn_threshold,
    )
    judge = Judge(problem_store, executor, screener=screener, config=config)
    store = JsonSubmissionStore(submissions_file) if submissions_file else InMemorySubmissionStore()
    return Submitter(judge, submission_store=store, config=config)


def outcome_to_dict(outcome: SubmissionOutcome) -> Dict[str, Any]:
    result = outcome.execution_result
    return {
        "success": outcome.success,
        "message": outcome.message,
        "status": outcome.submission.status.name if outcome.submission else "NOT_JUDGED",
        "points_earned": outcome.points_earned,
        "improvement_suggestions": outcome.improvement_suggestions,
        "side_effects": [vars(effect) for effect in outcome.side_effects],
        "result": result.to_dict() if result else None,
    }


def print_evaluation_summary(results: List[Mapping[str, Any]]) -> None:
    print("\n" + "=" * 80)
    print("EVALUATION SUMMARY")
    print("=" * 80)
    if not results:
        print("No submissions evaluated.")
        return
    counts = Counter(r["status"] for r in results)
    print(f"Submissions evaluated: {len(results)}")
    for status, count in counts.most_common():
        print(f"  {status}: {count} ({count / len(results) * 100:.1f}%)")
    accepted = counts.get("ACCEPTED", 0)
    print(f"Acceptance rate: {accepted / len(results) * 100:.2f}%")
    print("=" * 80)


# ---------------------------------------------------------------------------
# Batch workflow
# ---------------------------------------------------------------------------

def load_submissions(path: str) -> List[Dict[str, Any]]:
    """
    Read the batch input file: a JSON list of objects with ``user_id``,
    ``problem_id``, ``language`` and either ``code`` or ``solution_file``
    (relative paths resolve against the input file's folder).
    """
    with open(path) as handle:
        entries = json.load(handle)
    base_dir = os.path.dirname(os.path.abspath(path))
    submissions = []
    for entry in entries:
        code = entry.get("code")
        if code is None and entry.get("solution_file"):
            solution_path = os.path.join(base_dir, entry["solution_file"])
            with open(solution_path) as handle:
                code = handle.read()
            entry.setdefault("language", Language.from_filename(solution_path).value)
        if not code or not code.strip():
            LOGGER.warning("Skipping empty submission for problem %s", entry.get("problem_id"))
            continue
        submissions.append({
            "user_id": str(entry.get("user_id", "anonymous")),
            "problem_id": entry["problem_id"],
            "language": entry["language"],
            "code": code,
        })
    return submissions


def run_batch(args: argparse.Namespace) -> None:
    config = load_config(args.config)
    submissions = load_submissions(args.submissions)
    print(f"=== Start at {datetime.now()} ===")
    print(f"Total non-empty submissions to evaluate: {len(submissions)}")

    start = time.time()
    with build_executor(args) as executor:
        submitter = build_submitter(DirectoryProblemStore(args.problems_root), executor, config, args.submissions_store)

        def evaluate(entry):
            outcome = submitter.submit(entry["user_id"], entry["problem_id"], entry["code"], entry["language"])
            return {"user_id": entry["user_id"], "problem_id": entry["problem_id"], **outcome_to_dict(outcome)}

        with ThreadPoolExecutor(max_workers=args.workers) as pool:
            results = list(tqdm(pool.map(evaluate, submissions), total=len(submissions), desc="Judging"))

    print_evaluation_summary(results)
    duration = time.time() - start

    os.makedirs(os.path.dirname(os.path.abspath(args.output)), exist_ok=True)
    with open(args.output, "w") as handle:
        json.dump({
            "generated_at": datetime.now().isoformat(),
            "duration_seconds": duration,
            "config": config.to_dict(),
            "results": results,
        }, handle, indent=2)
    print(f"Wrote results to {args.output}")
    print(f"=== Done in {duration:.2f}s ===")


# ---------------------------------------------------------------------------
# Single-solution workflow
# ---------------------------------------------------------------------------

def run_single(args: argparse.Namespace) -> None:
    config = load_config(args.config)
    problem_dir = os.path.abspath(args.problem_dir)
    problems_root, problem_id = os.path.split(problem_dir.rstrip(os.sep))
    with open(args.solution_file) as handle:
        code = handle.read()
    language = args.language or Language.from_filename(args.solution_file).value

    with build_executor(args) as executor:
        submitter = build_submitter(DirectoryProblemStore(problems_root), executor, config)
        outcome = submitter.submit(args.user_id, problem_id, code, language)

    summary = outcome_to_dict(outcome)
    print(f"Result: {summary['status']}")
    if outcome.message:
        print(outcome.message)
    if outcome.execution_result is not None:
        print(outcome.execution_result.output)
        for line in outcome.execution_result.feedback:
            print(f"- {line}")
    print(json.dumps(summary, indent=2, default=str))
    if not outcome.success and outcome.execution_result is None:
        sys.exit(1)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Judge code submissions against practice problems.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", type=str, default=None, help="JSON file with judge settings")
    parser.add_argument("--executor_url", type=str, default=None,
                        help="Base URL of a remote execution service (runs locally when omitted)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    batch = subparsers.add_parser("batch", help="Judge many submissions and write JSON results.")
    batch.add_argument("--problems_root", type=str, required=True, help="Folder holding one sub-folder per problem")
    batch.add_argument("--submissions", type=str, required=True, help="JSON list of submissions to judge")
    batch.add_argument("--output", type=str, required=True, help="Path for the JSON results file")
    batch.add_argument("--submissions_store", type=str, default=None,
                       help="JSON file to record submissions and solutions in")
    batch.add_argument("--workers", type=int, default=4, help="Submissions judged in parallel")
    batch.set_defaults(handler=run_batch)

    single = subparsers.add_parser("single", help="Judge a single solution file.")
    single.add_argument("--problem_dir", type=str, required=True, help="Problem folder with problem.json")
    single.add_argument("--solution_file", type=str, required=True)
    single.add_argument("--language", type=str, default=None, help="Language tag, inferred from the file extension if omitted")
    single.add_argument("--user_id", type=str, default="local")
    single.set_defaults(handler=run_single)

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s:%(message)s")
    args.handler(args)


if __name__ == "__main__":
    main()
