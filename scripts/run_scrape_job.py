"""
Run One Comparable Scrape Job

Creates a scrape job for an address, runs it synchronously and prints the
terminal job snapshot as JSON.

Usage:
    python scripts/run_scrape_job.py "123 Main St, Nashville, TN" --radius 3 --amenities pool,gym
"""
import argparse
import sys
from pathlib import Path

# Add parent directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.compscraper.services.scrape_jobs import ScrapeJobService
from src.compscraper.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def main() -> int:
    """Main entry point for the scrape job script."""
    parser = argparse.ArgumentParser(
        description="Scrape comparable properties around an address"
    )
    parser.add_argument('address', help='Ground-zero address, e.g. "123 Main St, Nashville, TN"')
    parser.add_argument('--radius', type=float, default=None, help='Search radius in miles')
    parser.add_argument('--asset-type', default=None, help='Asset type filter (default Multifamily)')
    parser.add_argument('--amenities', default='', help='Comma-separated amenity keywords')
    parser.add_argument('--keywords', default='', help='Comma-separated free-text keywords')
    args = parser.parse_args()

    setup_logging()

    query = {
        'address': args.address,
        'asset_type': args.asset_type,
        'amenities': args.amenities,
        'keywords': args.keywords,
    }
    if args.radius is not None:
        query['radius_mi'] = args.radius

    service = ScrapeJobService()
    try:
        snapshot = service.create_and_run(query)
    finally:
        service.shutdown()

    print(snapshot.model_dump_json(indent=2))
    return 0 if snapshot.status.value == 'succeeded' else 1


if __name__ == "__main__":
    sys.exit(main())
