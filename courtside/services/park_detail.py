"""Everything the park page needs, loaded in one call.

Queues are pruned and the park itself must load; the other sections are
best effort. A section that fails comes back as ``None`` and sections not
reached within the time limit are skipped, with one warning for the caller.
"""
import logging
import time

from courtside.app import db

logger = logging.getLogger(__name__)

SLOW_LOAD_WARNING = 'Loading is slow. Showing partial data.'
PARTIAL_LOAD_WARNING = 'Some park details failed to load. Showing what we have.'


class ParkDetailLoader:
    def __init__(self, park_registry, queue_manager, checkin_ledger, game_scheduler,
                 social, timeout_seconds=10, timer=time.monotonic):
        self.parks = park_registry
        self.queue = queue_manager
        self.checkins = checkin_ledger
        self.games = game_scheduler
        self.social = social
        self.timeout_seconds = timeout_seconds
        self.timer = timer

    def _sections(self, park_id, viewer):
        yield 'reviews', lambda: [r.to_dict() for r in self.social.reviews_for_park(park_id)]
        yield 'games', lambda: [g.to_dict() for g in self.games.get_games_by_park(park_id)]
        yield 'check_ins', lambda: [c.to_dict() for c in self.checkins.get_park_check_ins(park_id)]
        if viewer is not None:
            yield 'is_favorite', lambda: self.social.is_favorite(viewer.id, park_id)
            yield 'active_check_in', lambda: self._active_check_in(viewer.id)

    def _active_check_in(self, user_id):
        active = self.checkins.get_active_check_in(user_id)
        return active.to_dict() if active else None

    def load(self, park_id, viewer=None):
        started = self.timer()
        self.queue.cleanup_expired_queue_players(park_id)
        park = self.parks.get_park(park_id, viewer=viewer)

        result = {
            'park': park.to_dict(),
            'reviews': None,
            'games': None,
            'check_ins': None,
            'is_favorite': False,
            'active_check_in': None,
            'warning': None,
        }
        timed_out = False
        failed = []
        for name, loader in self._sections(park_id, viewer):
            if self.timer() - started >= self.timeout_seconds:
                timed_out = True
                break
            try:
                result[name] = loader()
            except Exception:
                logger.exception('Park %s detail section %s failed', park_id, name)
                db.session.rollback()
                failed.append(name)

        if timed_out:
            result['warning'] = SLOW_LOAD_WARNING
            logger.warning('Park %s detail load exceeded %ss', park_id, self.timeout_seconds)
        elif failed:
            result['warning'] = PARTIAL_LOAD_WARNING
        return result
