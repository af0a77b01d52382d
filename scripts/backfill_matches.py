"""Match backfill script that materializes matches for existing users."""

import argparse
import sys
from typing import List, Optional

from matrimatch.services.match_service import backfill_matches, recalculate_user_matches
from matrimatch.utils.cache import ScoreCache
from matrimatch.utils.database import init_database
from matrimatch.utils.errors import MatrimatchError
from matrimatch.utils.logging import configure_logging, get_logger
from matrimatch.utils.monitoring import init_sentry

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Materialize matches for eligible users.")
    parser.add_argument(
        "--user-id",
        help="Recalculate the matches of a single user instead of backfilling everyone.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the backfill. Returns the process exit code."""
    args = parse_args(argv)

    configure_logging()
    init_sentry()
    init_database()
    cache = ScoreCache.from_settings()

    try:
        if args.user_id:
            result = recalculate_user_matches(args.user_id, cache=cache)
            logger.info(
                "Recalculated user matches", user_id=args.user_id, created=result.created, skipped=result.skipped
            )
        else:
            result = backfill_matches(cache=cache)
            logger.info("Backfill complete", created=result.created, skipped=result.skipped)
    except MatrimatchError as e:
        logger.error("Backfill failed", error=e.message, details=e.details)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
