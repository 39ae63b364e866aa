"""Thin data-access wrappers around the SQLAlchemy session.

Services receive these instead of touching ``db.session`` directly, so a unit
of work (one request, one CLI command) is committed in one place.
"""
from sqlalchemy import or_
from courtside.app import db
from courtside.models import (
    CheckIn, Court, FriendGroup, FriendGroupMember, Friendship, Game,
    GameInvite, GameInviteRecipient, GamePlayer, Park, QueueEntry, User, UserBlock,
)


class _SessionRepository:
    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def add(self, record):
        self.session.add(record)
        return record

    def delete(self, record):
        self.session.delete(record)

    def flush(self):
        self.session.flush()

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()


class ParkRepository(_SessionRepository):
    def get(self, park_id):
        return self.session.get(Park, park_id)

    def get_court(self, park_id, court_id):
        court = self.session.get(Court, court_id)
        if not court or court.park_id != park_id:
            return None
        return court

    def get_court_by_number(self, park_id, court_number):
        return Court.query.filter_by(park_id=park_id, court_number=court_number).first()

    def all_park_ids(self):
        return [row.id for row in self.session.query(Park.id).order_by(Park.id).all()]

    def search(self, query_text='', city='', state='', include_unapproved=False):
        query = Park.query
        if not include_unapproved:
            query = query.filter(Park.approved.is_(True))
        if query_text:
            pattern = f'%{query_text}%'
            query = query.filter(or_(
                Park.name.ilike(pattern),
                Park.address.ilike(pattern),
                Park.city.ilike(pattern),
            ))
        if city:
            query = query.filter(Park.city.ilike(city))
        if state:
            query = query.filter(Park.state.ilike(state))
        return query.order_by(Park.name).all()

    def pending(self):
        return Park.query.filter(
            Park.approved.is_(False),
            Park.review_status == 'pending',
        ).order_by(Park.created_at).all()

    def queue_entries_for_park(self, park_id):
        return QueueEntry.query.join(Court).filter(Court.park_id == park_id).all()

    def queue_entry(self, court_id, user_id):
        return QueueEntry.query.filter_by(court_id=court_id, user_id=user_id).first()

    def ordered_queue(self, court_id):
        return QueueEntry.query.filter_by(court_id=court_id).order_by(
            QueueEntry.joined_at, QueueEntry.id
        ).all()


class CheckInRepository(_SessionRepository):
    def get(self, check_in_id):
        return self.session.get(CheckIn, check_in_id)

    def active_for_user(self, user_id):
        return CheckIn.query.filter_by(user_id=user_id, is_active=True).order_by(
            CheckIn.check_in_time.desc(), CheckIn.id.desc()
        ).all()

    def open_queued_for_user(self, user_id, park_id):
        return CheckIn.query.filter(
            CheckIn.user_id == user_id,
            CheckIn.park_id == park_id,
            CheckIn.in_queue.is_(True),
            CheckIn.check_out_time.is_(None),
        ).all()

    def active_for_park(self, park_id):
        return CheckIn.query.filter_by(park_id=park_id, is_active=True).order_by(
            CheckIn.check_in_time.desc(), CheckIn.id.desc()
        ).all()

    def open_for_court(self, park_id, court_number):
        """Active or still-queued check-ins that point at a court by number."""
        return CheckIn.query.filter(
            CheckIn.park_id == park_id,
            CheckIn.court_number == court_number,
            CheckIn.check_out_time.is_(None),
        ).all()

    def history_for_user(self, user_id, limit):
        return CheckIn.query.filter_by(user_id=user_id).order_by(
            CheckIn.check_in_time.desc(), CheckIn.id.desc()
        ).limit(limit).all()


class GameRepository(_SessionRepository):
    def get(self, game_id):
        return self.session.get(Game, game_id)

    def by_park(self, park_id, statuses):
        return Game.query.filter(
            Game.park_id == park_id,
            Game.status.in_(statuses),
        ).order_by(Game.scheduled_time.asc(), Game.id.asc()).all()

    def for_user(self, user_id):
        return Game.query.join(GamePlayer).filter(
            GamePlayer.user_id == user_id,
        ).order_by(Game.scheduled_time.desc(), Game.id.desc()).all()

    def upcoming(self, now, limit):
        return Game.query.filter(
            Game.status == 'scheduled',
            Game.scheduled_time >= now,
        ).order_by(Game.scheduled_time.asc()).limit(limit).all()

    def invites_for_user(self, user_id):
        return GameInvite.query.join(GameInviteRecipient).filter(
            GameInviteRecipient.user_id == user_id,
        ).order_by(GameInvite.created_at.desc(), GameInvite.id.desc()).all()


class UserDirectory(_SessionRepository):
    def get(self, user_id):
        return self.session.get(User, user_id)

    def by_username(self, username):
        return User.query.filter_by(username=username).first()

    def by_email(self, email):
        return User.query.filter_by(email=email).first()

    def search(self, query_text, limit=20):
        pattern = f'%{query_text}%'
        return User.query.filter(or_(
            User.username.ilike(pattern),
            User.display_name.ilike(pattern),
        )).order_by(User.username).limit(limit).all()

    def friend_ids(self, user_id):
        rows = Friendship.query.filter(
            Friendship.status == 'accepted',
            or_(Friendship.user_id == user_id, Friendship.friend_id == user_id),
        ).all()
        return [
            row.friend_id if row.user_id == user_id else row.user_id
            for row in rows
        ]

    def friendship_between(self, user_a, user_b):
        return Friendship.query.filter(or_(
            (Friendship.user_id == user_a) & (Friendship.friend_id == user_b),
            (Friendship.user_id == user_b) & (Friendship.friend_id == user_a),
        )).first()

    def is_either_blocked(self, user_a, user_b):
        return UserBlock.query.filter(or_(
            (UserBlock.user_id == user_a) & (UserBlock.blocked_user_id == user_b),
            (UserBlock.user_id == user_b) & (UserBlock.blocked_user_id == user_a),
        )).first() is not None

    def group_member_ids(self, group_ids):
        if not group_ids:
            return []
        rows = FriendGroupMember.query.join(FriendGroup).filter(
            FriendGroup.id.in_(group_ids),
        ).all()
        return [row.user_id for row in rows]
