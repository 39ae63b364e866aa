"""Parks, their courts, and park moderation."""
import logging
import math

from courtside.errors import Conflict, NotFound, PermissionDenied, ValidationError
from courtside.models import CheckIn, Court, FavoritePark, GameInvite, Park, Review
from courtside.services.park_payloads import (
    apply_changes, normalize_court_payload, normalize_park_payload,
)
from courtside.sports import clamp_player_count, supports_half_court
from courtside.time_utils import utcnow_naive

logger = logging.getLogger(__name__)

REVIEW_PENDING = 'pending'
REVIEW_APPROVED = 'approved'
REVIEW_DENIED = 'denied'


def haversine_distance(lat1, lon1, lat2, lon2):
    R = 3959
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(dlon / 2) ** 2)
    return R * 2 * math.asin(math.sqrt(a))


def _drop_unsupported_shape(court):
    if not supports_half_court(court.sport_type):
        court.is_half_court = False
    if not court.is_half_court:
        court.game_format = None


def _raise_for_errors(errors):
    if errors:
        raise ValidationError(errors[0])


class ParkRegistry:
    def __init__(self, park_repo, checkin_repo, clock=utcnow_naive):
        self.parks = park_repo
        self.checkins = checkin_repo
        self.clock = clock

    # ── Parks ─────────────────────────────────────────────────────────

    def get_park(self, park_id, viewer=None):
        park = self.parks.get(park_id)
        if not park:
            raise NotFound('Park not found')
        if not park.approved and not self._can_manage(park, viewer):
            raise NotFound('Park not found')
        return park

    def search_parks(self, query_text='', city='', state=''):
        return self.parks.search(
            query_text=str(query_text or '').strip(),
            city=str(city or '').strip(),
            state=str(state or '').strip(),
        )

    def get_nearby_parks(self, latitude, longitude, radius_miles):
        nearby = []
        for park in self.parks.search():
            distance = haversine_distance(latitude, longitude, park.latitude, park.longitude)
            if distance <= radius_miles:
                nearby.append((distance, park))
        nearby.sort(key=lambda pair: pair[0])
        return nearby

    def get_pending_parks(self):
        return self.parks.pending()

    def park_ids(self):
        return self.parks.all_park_ids()

    @staticmethod
    def _can_manage(park, user):
        if not user:
            return False
        return bool(user.is_admin) or park.created_by_user_id == user.id

    def create_park(self, payload, creator):
        park_data, errors = normalize_park_payload(payload)
        _raise_for_errors(errors)
        courts_payload = payload.get('courts') or []
        if not isinstance(courts_payload, list):
            raise ValidationError('courts must be a list')
        courts_data = []
        for index, raw_court in enumerate(courts_payload, start=1):
            court_data, court_errors = normalize_court_payload(raw_court)
            _raise_for_errors(court_errors)
            court_data.setdefault('court_number', index)
            if any(c['court_number'] == court_data['court_number'] for c in courts_data):
                raise ValidationError('Court numbers must be unique within a park')
            courts_data.append(court_data)

        now = self.clock()
        auto_approve = bool(creator.is_admin)
        park = Park(
            created_by_user_id=creator.id,
            created_by_name=creator.public_name,
            approved=auto_approve,
            review_status=REVIEW_APPROVED if auto_approve else REVIEW_PENDING,
            created_at=now,
            updated_at=now,
        )
        apply_changes(park, park_data)
        if auto_approve:
            park.approved_by_user_id = creator.id
            park.approved_at = now
        for court_data in courts_data:
            court = self._build_court(court_data)
            court.last_updated = now
            park.courts.append(court)
        self.parks.add(park)
        self.parks.commit()
        logger.info(
            'Park %s created by user %s (%s)', park.id, creator.id, park.review_status
        )
        return park

    def update_park(self, park_id, payload, user):
        park = self.get_park(park_id, viewer=user)
        if not self._can_manage(park, user):
            raise PermissionDenied('Only the park creator or an admin can edit this park')
        park_data, errors = normalize_park_payload(payload, partial=True)
        _raise_for_errors(errors)
        apply_changes(park, park_data)
        park.updated_at = self.clock()
        self.parks.commit()
        return park

    def delete_park(self, park_id, user):
        park = self.parks.get(park_id)
        if not park:
            raise NotFound('Park not found')
        if not user.is_admin:
            raise PermissionDenied('Admin access required')
        for model in (CheckIn, Review, FavoritePark):
            model.query.filter_by(park_id=park.id).delete(synchronize_session=False)
        for invite in GameInvite.query.filter_by(park_id=park.id).all():
            self.parks.delete(invite)
        self.parks.delete(park)
        self.parks.commit()
        logger.info('Park %s deleted by admin %s', park_id, user.id)

    def approve_park(self, park_id, reviewer, message=None):
        park = self.parks.get(park_id)
        if not park:
            raise NotFound('Park not found')
        now = self.clock()
        park.approved = True
        park.review_status = REVIEW_APPROVED
        park.review_message = (message or '').strip() or None
        park.approved_by_user_id = reviewer.id
        park.approved_at = now
        park.reviewed_by_user_id = reviewer.id
        park.reviewed_at = now
        park.updated_at = now
        self.parks.commit()
        logger.info('Park %s approved by %s', park.id, reviewer.id)
        return park

    def deny_park(self, park_id, reviewer, message=None):
        park = self.parks.get(park_id)
        if not park:
            raise NotFound('Park not found')
        now = self.clock()
        park.approved = False
        park.review_status = REVIEW_DENIED
        park.review_message = (message or '').strip() or None
        park.reviewed_by_user_id = reviewer.id
        park.reviewed_at = now
        park.updated_at = now
        self.parks.commit()
        logger.info('Park %s denied by %s', park.id, reviewer.id)
        return park

    # ── Courts ────────────────────────────────────────────────────────

    def _ensure_court_unoccupied(self, park, court, action):
        # Open check-ins find their court by number.
        if self.checkins.open_for_court(park.id, court.court_number):
            raise Conflict(f'Cannot {action} a court with players checked in')

    @staticmethod
    def _build_court(court_data):
        court = Court(sport_type='basketball', condition='good', player_count=0)
        apply_changes(court, court_data)
        _drop_unsupported_shape(court)
        return court

    def add_court(self, park_id, payload, user):
        park = self.get_park(park_id, viewer=user)
        if not self._can_manage(park, user):
            raise PermissionDenied('Only the park creator or an admin can edit courts')
        court_data, errors = normalize_court_payload(payload)
        _raise_for_errors(errors)
        if 'court_number' not in court_data:
            court_data['court_number'] = max(
                (c.court_number for c in park.courts), default=0
            ) + 1
        if park.court_by_number(court_data['court_number']):
            raise Conflict('Court number already exists at this park')
        court = self._build_court(court_data)
        court.last_updated = self.clock()
        park.courts.append(court)
        park.updated_at = self.clock()
        self.parks.commit()
        return court

    def update_court(self, park_id, court_id, payload, user):
        park = self.get_park(park_id, viewer=user)
        court = self.parks.get_court(park.id, court_id)
        if not court:
            raise NotFound('Court not found')
        if not self._can_manage(park, user):
            raise PermissionDenied('Only the park creator or an admin can edit courts')
        court_data, errors = normalize_court_payload(payload, partial=True)
        _raise_for_errors(errors)
        number = court_data.get('court_number')
        if number is not None and number != court.court_number:
            if park.court_by_number(number):
                raise Conflict('Court number already exists at this park')
            self._ensure_court_unoccupied(park, court, 'renumber')
        apply_changes(court, court_data)
        _drop_unsupported_shape(court)
        # A smaller court (e.g. switching to half court) pulls the count down.
        court.player_count = clamp_player_count(court.player_count, court.max_players)
        court.last_updated = self.clock()
        park.updated_at = self.clock()
        self.parks.commit()
        return court

    def delete_court(self, park_id, court_id, user):
        park = self.get_park(park_id, viewer=user)
        court = self.parks.get_court(park.id, court_id)
        if not court:
            raise NotFound('Court not found')
        if not self._can_manage(park, user):
            raise PermissionDenied('Only the park creator or an admin can edit courts')
        self._ensure_court_unoccupied(park, court, 'delete')
        park.courts.remove(court)
        park.updated_at = self.clock()
        self.parks.commit()
