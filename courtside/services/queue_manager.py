"""Per-court "got next" queues.

Entries expire once their last activity (or join time, if they never
refreshed) is ``timeout_minutes`` or more in the past. Every read prunes
first, so callers never see a stale entry.
"""
import logging

from sqlalchemy.exc import IntegrityError

from courtside.errors import NotFound
from courtside.models import QueueEntry
from courtside.time_utils import minutes_since, utcnow_naive

logger = logging.getLogger(__name__)


class QueueManager:
    def __init__(self, park_repo, checkin_ledger, timeout_minutes=60, clock=utcnow_naive):
        self.parks = park_repo
        self.checkins = checkin_ledger
        self.timeout_minutes = max(1, int(timeout_minutes))
        self.clock = clock

    def _court_or_404(self, park_id, court_id):
        court = self.parks.get_court(park_id, court_id)
        if not court:
            raise NotFound('Court not found')
        return court

    def is_expired(self, entry, now=None):
        now = now or self.clock()
        return minutes_since(entry.last_seen_at, now) >= self.timeout_minutes

    def join_queue(self, park_id, court_id, user_id, user_name):
        court = self._court_or_404(park_id, court_id)
        now = self.clock()
        existing = self.parks.queue_entry(court.id, user_id)
        if existing and not self.is_expired(existing, now):
            return existing
        if existing:
            # An unpruned stale entry counts as a fresh join at the back of the queue.
            existing.joined_at = now
            existing.last_activity = now
            existing.user_name = user_name or existing.user_name
            self.parks.commit()
            logger.info('User %s rejoined queue on court %s after expiry', user_id, court.id)
            return existing

        entry = QueueEntry(
            court_id=court.id, user_id=user_id, user_name=user_name or '',
            joined_at=now, last_activity=now,
        )
        self.parks.add(entry)
        try:
            self.parks.commit()
        except IntegrityError:
            # Concurrent join for the same user and court already won.
            self.parks.rollback()
            return self.parks.queue_entry(court.id, user_id)
        logger.info('User %s joined queue on court %s', user_id, court.id)
        return entry

    def leave_queue(self, park_id, court_id, user_id, commit=True):
        court = self._court_or_404(park_id, court_id)
        entry = self.parks.queue_entry(court.id, user_id)
        if not entry:
            return False
        self.parks.delete(entry)
        if commit:
            self.parks.commit()
        logger.info('User %s left queue on court %s', user_id, court.id)
        return True

    def refresh_queue_activity(self, park_id, court_id, user_id):
        """Mark a queued player as still waiting; queue position is unchanged."""
        court = self._court_or_404(park_id, court_id)
        entry = self.parks.queue_entry(court.id, user_id)
        if not entry:
            raise NotFound('Not in this queue')
        entry.last_activity = self.clock()
        self.parks.commit()
        return entry

    def _prune(self, entries, now):
        removed = 0
        for entry in entries:
            if self.is_expired(entry, now):
                self.parks.delete(entry)
                removed += 1
        return removed

    def cleanup_expired_queue_players(self, park_id):
        if not self.parks.get(park_id):
            raise NotFound('Park not found')
        removed = self._prune(self.parks.queue_entries_for_park(park_id), self.clock())
        if removed:
            self.parks.commit()
            logger.info('Pruned %s expired queue entries at park %s', removed, park_id)
        return removed

    def cleanup_all_expired_queue_players(self):
        now = self.clock()
        total = 0
        for park_id in self.parks.all_park_ids():
            removed = self._prune(self.parks.queue_entries_for_park(park_id), now)
            if removed:
                logger.info('Pruned %s expired queue entries at park %s', removed, park_id)
            total += removed
        if total:
            self.parks.commit()
        return total

    def get_queue(self, park_id, court_id):
        court = self._court_or_404(park_id, court_id)
        self.cleanup_expired_queue_players(park_id)
        return self.parks.ordered_queue(court.id)

    def mark_as_playing(self, park_id, court_id, user_id, user_name, acting_user_id):
        """Move a player from the queue onto the court.

        Anyone may take a player off the queue; only the player themself also
        gets a fresh single-player active check-in on this court.
        """
        court = self._court_or_404(park_id, court_id)
        removed = self.leave_queue(park_id, court.id, user_id, commit=False)
        check_in = None
        if user_id == acting_user_id:
            check_in = self.checkins.create_check_in(
                park_id, user_id, user_name, court.court_number,
                player_count=1, in_queue=False, close_queued=True, commit=False,
            )
        self.parks.commit()
        logger.info(
            'User %s marked as playing on court %s by user %s', user_id, court.id, acting_user_id
        )
        return {'removed_from_queue': removed, 'check_in': check_in}
