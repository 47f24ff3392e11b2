#!/usr/bin/env python3
"""
CLI script to rebuild derived housing counters.

Recounts active registrations into the capacity ledger and room assignments
into room occupancy. Both jobs overwrite the stored values, so the script
can be run periodically or after a manual data fix.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to Python path
sys.path.append(str(Path(__file__).parent.parent))

from housing_core.config.environment import IS_PRODUCTION_ENVIRONMENT
from housing_core.utils.logging_config import setup_logging
from housing_core.db import execute_in_transaction, DatabaseError
from housing_core.allocation import HousingError, recalculate_capacity, recalculate_room_occupancy

logger = logging.getLogger(__name__)

def main(argv=None):
    parser = argparse.ArgumentParser(description='Recalculate capacity counters and room occupancy of an event')
    parser.add_argument('event_id', type=int, help='Event to reconcile')
    parser.add_argument(
        '--skip-rooms',
        action='store_true',
        help='Only rebuild the capacity ledger, leave room occupancy alone'
    )
    parser.add_argument('--json', action='store_true', help='Print the capacity report as JSON')
    args = parser.parse_args(argv)

    setup_logging()
    logger.info(f"Reconciling event {args.event_id} ({'production' if IS_PRODUCTION_ENVIRONMENT else 'development'})")

    try:
        report = execute_in_transaction(recalculate_capacity, args.event_id)
        if args.json:
            print(json.dumps(report.to_dict(), indent=2))

        if not args.skip_rooms:
            fixed = execute_in_transaction(recalculate_room_occupancy, args.event_id)
            for room in fixed:
                logger.info(
                    f"{room['room']}: occupancy {room['old_occupancy']} -> {room['new_occupancy']}"
                )
        return 0
    except HousingError as e:
        logger.error(f"Cannot reconcile event {args.event_id}: {e}")
        return 1
    except DatabaseError as e:
        logger.error(f"Failed to reconcile event {args.event_id}: {e}")
        return 1

if __name__ == '__main__':
    sys.exit(main())
