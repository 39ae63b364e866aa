"""Per-court player counts."""
import logging

from courtside.errors import NotFound, ValidationError
from courtside.sports import (
    GAME_FORMAT_PLAYER_COUNTS, clamp_player_count, max_players_for_court,
    supports_half_court,
)
from courtside.time_utils import utcnow_naive

logger = logging.getLogger(__name__)


class OccupancyTracker:
    def __init__(self, park_repo, checkin_repo, clock=utcnow_naive):
        self.parks = park_repo
        self.checkins = checkin_repo
        self.clock = clock

    @staticmethod
    def max_players_for_court(sport_type, is_half_court, game_format=None):
        return max_players_for_court(sport_type, is_half_court, game_format)

    def _court_or_404(self, park_id, court_id):
        court = self.parks.get_court(park_id, court_id)
        if not court:
            raise NotFound('Court not found')
        return court

    def _set_count(self, court, count, ceiling):
        previous = court.player_count or 0
        court.player_count = clamp_player_count(count, ceiling)
        court.last_updated = self.clock()
        if court.player_count != previous:
            logger.info(
                'Court %s player count %s -> %s',
                court.id, previous, court.player_count,
            )
        return court

    def update_court_player_count(self, park_id, court_id, count, game_format=None):
        """Set a court's count directly, clamped to its ceiling.

        On a half-court basketball court with a 1v1..5v5 format the count
        becomes exactly the format's head count, and the format is kept on the
        court until the court is edited back to a full or non-basketball court.
        """
        court = self._court_or_404(park_id, court_id)
        if game_format is not None and game_format not in GAME_FORMAT_PLAYER_COUNTS:
            raise ValidationError('Invalid game format')
        use_format = (
            game_format is not None
            and court.is_half_court
            and supports_half_court(court.sport_type)
        )
        if use_format:
            # The format stays on the court so later adjustments share its ceiling.
            court.game_format = game_format
            count = GAME_FORMAT_PLAYER_COUNTS[game_format]
        elif count is None:
            raise ValidationError('player_count is required')
        self._set_count(court, count, court.max_players)
        self.parks.commit()
        return court

    def adjust_court_player_count(self, park_id, court_number, delta):
        """Shift a court's count by ``delta``; caller commits."""
        court = self.parks.get_court_by_number(park_id, court_number)
        if not court:
            logger.warning(
                'No court %s at park %s to adjust player count', court_number, park_id
            )
            return None
        return self._set_count(court, (court.player_count or 0) + int(delta), court.max_players)

    def reconcile_park(self, park_id):
        """Recount every court from the active check-ins at the park."""
        park = self.parks.get(park_id)
        if not park:
            raise NotFound('Park not found')
        totals = {}
        for check_in in self.checkins.active_for_park(park_id):
            totals[check_in.court_number] = (
                totals.get(check_in.court_number, 0) + (check_in.player_count or 0)
            )
        changed = 0
        for court in park.courts:
            previous = court.player_count
            self._set_count(court, totals.get(court.court_number, 0), court.max_players)
            if court.player_count != previous:
                changed += 1
        self.parks.commit()
        logger.info('Reconciled park %s: %s court(s) changed', park_id, changed)
        return changed
