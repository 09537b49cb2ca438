from __future__ import annotations

import argparse
import sys
from pathlib import Path


def _bootstrap_import_path() -> None:
    # Allow running as: python scripts/recalculate_matches.py
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


_bootstrap_import_path()

from sqlalchemy import select  # noqa: E402

from jobgraph.database import SessionLocal  # noqa: E402
from jobgraph.models.enums import JobStatus  # noqa: E402
from jobgraph.models.jobs import Job  # noqa: E402
import jobgraph.models  # noqa: F401,E402  # ensure all models are registered
from jobgraph.services.errors import MatchingError  # noqa: E402
from jobgraph.services.matching_service import calculate_matches  # noqa: E402


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Recalculate strict matches for one or more jobs.")
    parser.add_argument("job_ids", nargs="*", type=int, help="Job ids to recalculate")
    parser.add_argument("--all-active", action="store_true", help="Recalculate every active job")
    args = parser.parse_args(argv)

    if not args.job_ids and not args.all_active:
        parser.error("pass job ids or --all-active")

    failures = 0
    with SessionLocal() as db:
        job_ids = list(args.job_ids)
        if args.all_active:
            job_ids += [
                jid for jid in db.execute(select(Job.id).where(Job.status == JobStatus.ACTIVE)).scalars()
                if jid not in job_ids
            ]

        for job_id in job_ids:
            try:
                result = calculate_matches(db, job_id)
            except MatchingError as exc:
                failures += 1
                print(f"job {job_id}: {exc.code} {exc.message}")
                continue
            print(f"job {job_id}: {result.total_matches} matches")

    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
