"""Check-in records and the court counts they drive."""
import logging

from courtside.errors import NotFound, PermissionDenied, ValidationError
from courtside.models import CheckIn
from courtside.sports import is_racquet_sport
from courtside.time_utils import utcnow_naive

logger = logging.getLogger(__name__)

DEFAULT_CHECK_IN_PLAYER_COUNT = 5


class CheckInLedger:
    def __init__(self, checkin_repo, park_repo, occupancy, history_limit=50,
                 clock=utcnow_naive):
        self.checkins = checkin_repo
        self.parks = park_repo
        self.occupancy = occupancy
        self.history_limit = history_limit
        self.clock = clock

    def _close(self, check_in, now):
        was_active = check_in.is_active
        check_in.is_active = False
        if check_in.check_out_time is None:
            check_in.check_out_time = now
        check_in.updated_at = now
        if was_active:
            self.occupancy.adjust_court_player_count(
                check_in.park_id, check_in.court_number, -(check_in.player_count or 0)
            )
        return was_active

    def _get_owned(self, check_in_id, user_id):
        check_in = self.checkins.get(check_in_id)
        if not check_in:
            raise NotFound('Check-in not found')
        if user_id is not None and check_in.user_id != user_id:
            raise PermissionDenied('Not your check-in')
        return check_in

    def _resolve_player_count(self, court, player_count):
        ceiling = court.max_players
        if player_count is None:
            return min(DEFAULT_CHECK_IN_PLAYER_COUNT, ceiling)
        try:
            value = int(player_count)
        except (TypeError, ValueError):
            raise ValidationError('player_count must be a number')
        if value < 1 or value > ceiling:
            raise ValidationError(f'player_count must be between 1 and {ceiling}')
        return value

    def create_check_in(self, park_id, user_id, user_name, court_number,
                        player_count=None, in_queue=False, prefer_doubles=None,
                        notes=None, close_queued=False, commit=True):
        park = self.parks.get(park_id)
        if not park or not park.approved:
            raise NotFound('Park not found')
        court = park.court_by_number(court_number)
        if not court:
            raise NotFound('Court not found')

        now = self.clock()
        in_queue = bool(in_queue)
        # Doubles preference only means something on racquet courts.
        if prefer_doubles is not None and is_racquet_sport(court.sport_type):
            prefer_doubles = bool(prefer_doubles)
        else:
            prefer_doubles = None
        check_in = CheckIn(
            park_id=park.id,
            park_name=park.name,
            user_id=user_id,
            user_name=user_name or '',
            court_number=court.court_number,
            player_count=self._resolve_player_count(court, player_count),
            prefer_doubles=prefer_doubles,
            notes=(notes or None),
            check_in_time=now,
            in_queue=in_queue,
            is_active=not in_queue,
            created_at=now,
            updated_at=now,
        )

        if check_in.is_active:
            # One active check-in per user: close the previous one first.
            for previous in self.checkins.active_for_user(user_id):
                self._close(previous, now)
                logger.info(
                    'Closed check-in %s for user %s before new check-in', previous.id, user_id
                )
            if close_queued:
                for queued in self.checkins.open_queued_for_user(user_id, park.id):
                    self._close(queued, now)
            self.occupancy.adjust_court_player_count(
                park.id, court.court_number, check_in.player_count
            )

        self.checkins.add(check_in)
        if commit:
            self.checkins.commit()
        logger.info(
            'User %s checked in at park %s court %s (%s)',
            user_id, park.id, court.court_number, 'queued' if in_queue else 'active',
        )
        return check_in

    def check_out(self, check_in_id, user_id=None):
        check_in = self._get_owned(check_in_id, user_id)
        if check_in.check_out_time is not None and not check_in.is_active:
            return check_in
        self._close(check_in, self.clock())
        self.checkins.commit()
        logger.info('Check-in %s checked out', check_in.id)
        return check_in

    def get_active_check_in(self, user_id):
        active = self.checkins.active_for_user(user_id)
        return active[0] if active else None

    def get_park_check_ins(self, park_id):
        return self.checkins.active_for_park(park_id)

    def get_user_check_in_history(self, user_id, limit=None):
        if limit is None:
            limit = self.history_limit
        return self.checkins.history_for_user(user_id, max(1, int(limit)))

    def history_by_park(self, user_id, limit=None):
        """Check-in history collapsed to the most recent visit per park."""
        seen = set()
        latest = []
        for check_in in self.get_user_check_in_history(user_id, limit):
            if check_in.park_id in seen:
                continue
            seen.add(check_in.park_id)
            latest.append(check_in)
        return latest

    def delete_check_in(self, check_in_id, user_id=None):
        check_in = self._get_owned(check_in_id, user_id)
        if check_in.is_active:
            self._close(check_in, self.clock())
        park_id = check_in.park_id
        self.checkins.delete(check_in)
        self.checkins.commit()
        logger.info('Deleted check-in %s', check_in_id)
        return park_id
