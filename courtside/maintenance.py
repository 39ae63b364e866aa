"""CLI for periodic upkeep: pruning stale queue entries and recounting courts.

Run ``prune-queues`` from a scheduler every 15 minutes.
"""

import argparse
import json
import logging

from courtside.app import create_app
from courtside.services import get_services

logger = logging.getLogger(__name__)


def _build_parser():
    parser = argparse.ArgumentParser(
        description='Courtside maintenance tasks.',
    )
    parser.add_argument(
        'command',
        choices=['prune-queues', 'reconcile'],
        help='prune-queues drops expired got-next entries; reconcile recounts court occupancy.',
    )
    parser.add_argument(
        '--park-id',
        type=int,
        help='Limit the task to a single park (default: every park).',
    )
    parser.add_argument(
        '--env',
        default='development',
        choices=['development', 'testing', 'production'],
        help='App config environment to use (default: development).',
    )
    return parser


def run(command, park_id=None):
    """Run one maintenance command inside an app context; returns a summary dict."""
    services = get_services()
    if command == 'prune-queues':
        if park_id is not None:
            removed = services.queue.cleanup_expired_queue_players(park_id)
        else:
            removed = services.queue.cleanup_all_expired_queue_players()
        return {'command': command, 'removed': removed}

    park_ids = [park_id] if park_id is not None else services.parks.park_ids()
    changed = 0
    for pid in park_ids:
        changed += services.occupancy.reconcile_park(pid)
    return {'command': command, 'parks': len(park_ids), 'courts_changed': changed}


def main(argv=None):
    args = _build_parser().parse_args(argv)
    app = create_app(args.env)

    with app.app_context():
        summary = run(args.command, park_id=args.park_id)
    logger.info('Maintenance %s finished: %s', args.command, summary)
    print(json.dumps(summary, indent=2))
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
