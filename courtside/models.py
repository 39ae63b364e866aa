import json
from courtside.app import db
from courtside.sports import (
    CONDITION_DISPLAY, SPORT_DISPLAY, max_players_for_court,
)
from courtside.time_utils import isoformat_or_none, utcnow_naive


def _safe_json(raw_value, fallback=None):
    if fallback is None:
        fallback = {}
    if not raw_value:
        return fallback
    try:
        return json.loads(raw_value)
    except (TypeError, ValueError):
        return fallback


def _dump_list(values):
    return json.dumps([str(v) for v in (values or []) if str(v).strip()])


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    display_name = db.Column(db.String(120), default='')
    photo_url = db.Column(db.String(500), default='')
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    @property
    def public_name(self):
        return self.display_name or self.username

    def to_dict(self):
        return {
            'id': self.id, 'username': self.username, 'email': self.email,
            'display_name': self.public_name, 'photo_url': self.photo_url,
            'is_admin': self.is_admin,
            'created_at': isoformat_or_none(self.created_at),
        }

    def to_public_dict(self):
        return {
            'id': self.id, 'username': self.username,
            'display_name': self.public_name, 'photo_url': self.photo_url,
        }


class Friendship(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    friend_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    status = db.Column(db.String(20), default='pending')  # pending, accepted, declined
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    user = db.relationship('User', foreign_keys=[user_id], backref='sent_requests')
    friend = db.relationship('User', foreign_keys=[friend_id], backref='received_requests')


class UserBlock(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    blocked_user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    __table_args__ = (
        db.UniqueConstraint('user_id', 'blocked_user_id', name='uq_user_block_pair'),
    )


class FavoritePark(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    park_id = db.Column(db.Integer, db.ForeignKey('park.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    __table_args__ = (
        db.UniqueConstraint('user_id', 'park_id', name='uq_favorite_park_user'),
    )


# ── Parks & Courts ────────────────────────────────────────────────────

class Park(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    address = db.Column(db.String(500), default='')
    city = db.Column(db.String(100), default='')
    state = db.Column(db.String(50), default='')
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)
    description = db.Column(db.Text, default='')
    amenities_json = db.Column(db.Text, default='[]')
    photo_urls_json = db.Column(db.Text, default='[]')
    average_rating = db.Column(db.Float, default=0.0)
    total_reviews = db.Column(db.Integer, default=0)
    # Moderation
    approved = db.Column(db.Boolean, default=True, nullable=False)
    review_status = db.Column(db.String(20), default='approved')  # pending, approved, denied
    review_message = db.Column(db.Text, nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    created_by_name = db.Column(db.String(120), default='')
    approved_by_user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    reviewed_by_user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    courts = db.relationship(
        'Court', backref='park', lazy='selectin',
        order_by='Court.court_number', cascade='all, delete-orphan',
    )

    @property
    def amenities(self):
        return _safe_json(self.amenities_json, [])

    @amenities.setter
    def amenities(self, values):
        self.amenities_json = _dump_list(values)

    @property
    def photo_urls(self):
        return _safe_json(self.photo_urls_json, [])

    @photo_urls.setter
    def photo_urls(self, values):
        self.photo_urls_json = _dump_list(values)

    def court_by_id(self, court_id):
        return next((c for c in self.courts if c.id == court_id), None)

    def court_by_number(self, court_number):
        return next((c for c in self.courts if c.court_number == court_number), None)

    def to_dict(self, include_courts=True):
        data = {
            'id': self.id, 'name': self.name, 'address': self.address,
            'city': self.city, 'state': self.state,
            'latitude': self.latitude, 'longitude': self.longitude,
            'description': self.description,
            'amenities': self.amenities, 'photo_urls': self.photo_urls,
            'average_rating': self.average_rating or 0.0,
            'total_reviews': self.total_reviews or 0,
            'approved': self.approved, 'review_status': self.review_status,
            'review_message': self.review_message,
            'created_by_user_id': self.created_by_user_id,
            'created_by_name': self.created_by_name,
            'approved_by_user_id': self.approved_by_user_id,
            'approved_at': isoformat_or_none(self.approved_at),
            'reviewed_by_user_id': self.reviewed_by_user_id,
            'reviewed_at': isoformat_or_none(self.reviewed_at),
            'created_at': isoformat_or_none(self.created_at),
            'updated_at': isoformat_or_none(self.updated_at),
        }
        if include_courts:
            data['courts'] = [c.to_dict() for c in self.courts]
        return data


class Court(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    park_id = db.Column(db.Integer, db.ForeignKey('park.id'), nullable=False)
    court_number = db.Column(db.Integer, nullable=False)
    custom_name = db.Column(db.String(120), nullable=True)
    sport_type = db.Column(db.String(30), default='basketball', nullable=False)
    condition = db.Column(db.String(20), default='good', nullable=False)
    has_lighting = db.Column(db.Boolean, default=False)
    is_half_court = db.Column(db.Boolean, default=False, nullable=False)
    # 1v1..5v5 on a half-court basketball court; None means the plain half-court cap.
    game_format = db.Column(db.String(10), nullable=True)
    condition_notes = db.Column(db.Text, nullable=True)
    player_count = db.Column(db.Integer, default=0, nullable=False)
    last_updated = db.Column(db.DateTime, default=lambda: utcnow_naive())

    __table_args__ = (
        db.UniqueConstraint('park_id', 'court_number', name='uq_court_park_number'),
        db.CheckConstraint('player_count >= 0', name='ck_court_player_count_non_negative'),
    )

    queue_entries = db.relationship(
        'QueueEntry', backref='court', lazy='selectin',
        order_by=lambda: [QueueEntry.joined_at, QueueEntry.id],
        cascade='all, delete-orphan',
    )

    @property
    def display_name(self):
        return self.custom_name or f'Court {self.court_number}'

    @property
    def max_players(self):
        return max_players_for_court(self.sport_type, self.is_half_court, self.game_format)

    def to_dict(self):
        return {
            'id': self.id, 'park_id': self.park_id,
            'court_number': self.court_number, 'custom_name': self.custom_name,
            'display_name': self.display_name,
            'sport_type': self.sport_type, 'condition': self.condition,
            'has_lighting': self.has_lighting, 'is_half_court': self.is_half_court,
            'game_format': self.game_format,
            'condition_notes': self.condition_notes,
            'player_count': self.player_count, 'max_players': self.max_players,
            'got_next_queue': [e.to_dict() for e in self.queue_entries],
            'sport_display': SPORT_DISPLAY.get(self.sport_type),
            'condition_display': CONDITION_DISPLAY.get(self.condition),
            'last_updated': isoformat_or_none(self.last_updated),
        }


class QueueEntry(db.Model):
    """A player waiting for the next turn on a court."""
    id = db.Column(db.Integer, primary_key=True)
    court_id = db.Column(db.Integer, db.ForeignKey('court.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    user_name = db.Column(db.String(120), default='')
    joined_at = db.Column(db.DateTime, default=lambda: utcnow_naive(), nullable=False)
    last_activity = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.UniqueConstraint('court_id', 'user_id', name='uq_queue_entry_court_user'),
        db.Index('ix_queue_entry_court_joined_at', 'court_id', 'joined_at'),
    )

    @property
    def last_seen_at(self):
        return self.last_activity or self.joined_at

    def to_dict(self):
        return {
            'id': self.id, 'court_id': self.court_id,
            'user_id': self.user_id, 'user_name': self.user_name,
            'joined_at': isoformat_or_none(self.joined_at),
            'last_activity': isoformat_or_none(self.last_activity),
        }


# ── Presence ──────────────────────────────────────────────────────────

class CheckIn(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    park_id = db.Column(db.Integer, db.ForeignKey('park.id'), nullable=False)
    park_name = db.Column(db.String(200), default='')
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    user_name = db.Column(db.String(120), default='')
    court_number = db.Column(db.Integer, nullable=False)
    player_count = db.Column(db.Integer, default=1, nullable=False)
    prefer_doubles = db.Column(db.Boolean, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    check_in_time = db.Column(db.DateTime, default=lambda: utcnow_naive(), nullable=False)
    check_out_time = db.Column(db.DateTime, nullable=True)
    in_queue = db.Column(db.Boolean, default=False, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    __table_args__ = (
        db.CheckConstraint('NOT (in_queue AND is_active)', name='ck_check_in_queue_or_active'),
        db.Index('ix_check_in_user_active', 'user_id', 'is_active'),
        db.Index('ix_check_in_park_active', 'park_id', 'is_active'),
    )

    def to_dict(self):
        return {
            'id': self.id, 'park_id': self.park_id, 'park_name': self.park_name,
            'user_id': self.user_id, 'user_name': self.user_name,
            'court_number': self.court_number, 'player_count': self.player_count,
            'prefer_doubles': self.prefer_doubles, 'notes': self.notes,
            'check_in_time': isoformat_or_none(self.check_in_time),
            'check_out_time': isoformat_or_none(self.check_out_time),
            'in_queue': self.in_queue, 'is_active': self.is_active,
            'created_at': isoformat_or_none(self.created_at),
            'updated_at': isoformat_or_none(self.updated_at),
        }


# ── Games ─────────────────────────────────────────────────────────────

class Game(db.Model):
    """Pre-scheduled pickup game, separate from the live court queue."""
    id = db.Column(db.Integer, primary_key=True)
    park_id = db.Column(db.Integer, db.ForeignKey('park.id'), nullable=False)
    court_id = db.Column(db.Integer, db.ForeignKey('court.id'), nullable=True)
    sport_type = db.Column(db.String(30), default='basketball')
    organizer_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    organizer_name = db.Column(db.String(120), default='')
    scheduled_time = db.Column(db.DateTime, nullable=False)
    max_players = db.Column(db.Integer, default=10, nullable=False)
    status = db.Column(db.String(20), default='scheduled')  # scheduled, active, completed, cancelled
    skill_level = db.Column(db.String(40), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    park = db.relationship('Park', backref=db.backref('games', cascade='all, delete-orphan'))
    players = db.relationship(
        'GamePlayer', backref='game', lazy='selectin',
        order_by='GamePlayer.id', cascade='all, delete-orphan',
    )

    @property
    def player_ids(self):
        return [p.user_id for p in self.players]

    @property
    def player_names(self):
        return [p.user_name for p in self.players]

    @property
    def is_full(self):
        return len(self.players) >= self.max_players

    def to_dict(self):
        return {
            'id': self.id, 'park_id': self.park_id,
            'park_name': self.park.name if self.park else '',
            'court_id': self.court_id, 'sport_type': self.sport_type,
            'organizer_id': self.organizer_id, 'organizer_name': self.organizer_name,
            'scheduled_time': isoformat_or_none(self.scheduled_time),
            'max_players': self.max_players,
            'player_ids': self.player_ids, 'player_names': self.player_names,
            'player_count': len(self.players), 'is_full': self.is_full,
            'status': self.status, 'skill_level': self.skill_level,
            'notes': self.notes,
            'created_at': isoformat_or_none(self.created_at),
        }


class GamePlayer(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    user_name = db.Column(db.String(120), default='')
    joined_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    __table_args__ = (
        db.UniqueConstraint('game_id', 'user_id', name='uq_game_player_game_user'),
    )


class GameInvite(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=True)
    park_id = db.Column(db.Integer, db.ForeignKey('park.id'), nullable=False)
    park_name = db.Column(db.String(200), default='')
    court_id = db.Column(db.Integer, nullable=True)
    court_number = db.Column(db.Integer, nullable=True)
    sport_type = db.Column(db.String(30), default='basketball')
    sender_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    sender_name = db.Column(db.String(120), default='')
    invite_type = db.Column(db.String(20), default='scheduled_game')  # scheduled_game, now_playing
    scheduled_time = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    recipients = db.relationship(
        'GameInviteRecipient', backref='invite', lazy='selectin',
        cascade='all, delete-orphan',
    )

    def to_dict(self):
        return {
            'id': self.id, 'game_id': self.game_id,
            'park_id': self.park_id, 'park_name': self.park_name,
            'court_id': self.court_id, 'court_number': self.court_number,
            'sport_type': self.sport_type,
            'sender_id': self.sender_id, 'sender_name': self.sender_name,
            'invite_type': self.invite_type,
            'scheduled_time': isoformat_or_none(self.scheduled_time),
            'invited_user_ids': [r.user_id for r in self.recipients],
            'invited_user_names': [r.user_name for r in self.recipients],
            'created_at': isoformat_or_none(self.created_at),
        }


class GameInviteRecipient(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    invite_id = db.Column(db.Integer, db.ForeignKey('game_invite.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    user_name = db.Column(db.String(120), default='')


# ── Groups & Messaging ────────────────────────────────────────────────

class FriendGroup(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    creator_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    members = db.relationship(
        'FriendGroupMember', backref='group', lazy='selectin',
        order_by='FriendGroupMember.id', cascade='all, delete-orphan',
    )
    messages = db.relationship(
        'GroupMessage', backref='group', lazy='dynamic',
        cascade='all, delete-orphan',
    )

    @property
    def member_ids(self):
        return [m.user_id for m in self.members]

    def to_dict(self):
        return {
            'id': self.id, 'name': self.name, 'creator_id': self.creator_id,
            'member_ids': self.member_ids,
            'member_names': [m.user_name for m in self.members],
            'created_at': isoformat_or_none(self.created_at),
            'updated_at': isoformat_or_none(self.updated_at),
        }


class FriendGroupMember(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('friend_group.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    user_name = db.Column(db.String(120), default='')

    __table_args__ = (
        db.UniqueConstraint('group_id', 'user_id', name='uq_friend_group_member'),
    )


class GroupMessage(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('friend_group.id'), nullable=False)
    sender_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    sender_name = db.Column(db.String(120), default='')
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    def to_dict(self):
        return {
            'id': self.id, 'group_id': self.group_id,
            'sender_id': self.sender_id, 'sender_name': self.sender_name,
            'content': self.content,
            'created_at': isoformat_or_none(self.created_at),
        }


# ── Reviews & Reports ─────────────────────────────────────────────────

class Review(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    park_id = db.Column(db.Integer, db.ForeignKey('park.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    user_name = db.Column(db.String(120), default='')
    rating = db.Column(db.Float, nullable=False)
    comment = db.Column(db.Text, default='')
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    def to_dict(self):
        return {
            'id': self.id, 'park_id': self.park_id,
            'user_id': self.user_id, 'user_name': self.user_name,
            'rating': self.rating, 'comment': self.comment,
            'created_at': isoformat_or_none(self.created_at),
            'updated_at': isoformat_or_none(self.updated_at),
        }


class UserReport(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    reporter_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    reporter_name = db.Column(db.String(120), default='')
    target_type = db.Column(db.String(20), nullable=False)  # profile, review, message
    target_id = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(100), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), default='open')  # open, reviewed, action_taken
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    def to_dict(self):
        return {
            'id': self.id, 'reporter_id': self.reporter_id,
            'reporter_name': self.reporter_name,
            'target_type': self.target_type, 'target_id': self.target_id,
            'reason': self.reason, 'notes': self.notes, 'status': self.status,
            'created_at': isoformat_or_none(self.created_at),
        }
