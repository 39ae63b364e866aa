"""Scheduled pickup games and their invites.

Status moves scheduled -> active -> completed, or scheduled -> cancelled.
Only the organizer moves a game out of ``scheduled``.
"""
import logging

from sqlalchemy.exc import IntegrityError

from courtside.errors import Conflict, NotFound, PermissionDenied, ValidationError
from courtside.models import Game, GameInvite, GameInviteRecipient, GamePlayer
from courtside.sports import normalize_sport_type
from courtside.time_utils import utcnow_naive

logger = logging.getLogger(__name__)

GAME_SCHEDULED = 'scheduled'
GAME_ACTIVE = 'active'
GAME_COMPLETED = 'completed'
GAME_CANCELLED = 'cancelled'
OPEN_STATUSES = (GAME_SCHEDULED, GAME_ACTIVE)

INVITE_SCHEDULED_GAME = 'scheduled_game'
INVITE_NOW_PLAYING = 'now_playing'

DEFAULT_MAX_PLAYERS = 10
MAX_PLAYERS_LIMIT = 50
UPCOMING_GAMES_LIMIT = 20


class GameScheduler:
    def __init__(self, game_repo, park_repo, user_directory, clock=utcnow_naive):
        self.games = game_repo
        self.parks = park_repo
        self.users = user_directory
        self.clock = clock

    def get_game(self, game_id):
        game = self.games.get(game_id)
        if not game:
            raise NotFound('Game not found')
        return game

    def _organized_game(self, game_id, user_id):
        game = self.get_game(game_id)
        if game.organizer_id != user_id:
            raise PermissionDenied('Only the organizer can do that')
        return game

    @staticmethod
    def _parse_max_players(value):
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            raise ValidationError('max_players must be a number')
        if parsed < 2 or parsed > MAX_PLAYERS_LIMIT:
            raise ValidationError(f'max_players must be between 2 and {MAX_PLAYERS_LIMIT}')
        return parsed

    def create_game(self, park_id, organizer, scheduled_time, max_players=None,
                    court_id=None, sport_type=None, skill_level=None, notes=None):
        park = self.parks.get(park_id)
        if not park or not park.approved:
            raise NotFound('Park not found')
        if scheduled_time is None:
            raise ValidationError('scheduled_time is required')
        court = None
        if court_id is not None:
            court = self.parks.get_court(park.id, court_id)
            if not court:
                raise NotFound('Court not found')

        game = Game(
            park_id=park.id,
            court_id=court.id if court else None,
            sport_type=normalize_sport_type(
                sport_type, fallback=court.sport_type if court else 'basketball'
            ),
            organizer_id=organizer.id,
            organizer_name=organizer.public_name,
            scheduled_time=scheduled_time,
            max_players=self._parse_max_players(
                DEFAULT_MAX_PLAYERS if max_players is None else max_players
            ),
            status=GAME_SCHEDULED,
            skill_level=(skill_level or None),
            notes=(notes or None),
            created_at=self.clock(),
        )
        game.players.append(GamePlayer(
            user_id=organizer.id, user_name=organizer.public_name, joined_at=self.clock(),
        ))
        self.games.add(game)
        self.games.commit()
        logger.info('Game %s scheduled at park %s by user %s', game.id, park.id, organizer.id)
        return game

    def update_game(self, game_id, user_id, scheduled_time=None, max_players=None,
                    skill_level=None, notes=None):
        game = self._organized_game(game_id, user_id)
        if game.status != GAME_SCHEDULED:
            raise Conflict('Only scheduled games can be edited')
        if max_players is not None:
            parsed = self._parse_max_players(max_players)
            if parsed < len(game.players):
                raise ValidationError('max_players cannot be below the current player count')
            game.max_players = parsed
        if scheduled_time is not None:
            game.scheduled_time = scheduled_time
        if skill_level is not None:
            game.skill_level = skill_level or None
        if notes is not None:
            game.notes = notes or None
        self.games.commit()
        return game

    def _transition(self, game, expected, target):
        if game.status != expected:
            raise Conflict(f'Game is {game.status}, expected {expected}')
        game.status = target
        logger.info('Game %s %s -> %s', game.id, expected, target)

    def cancel_game(self, game_id, user_id):
        game = self._organized_game(game_id, user_id)
        self._transition(game, GAME_SCHEDULED, GAME_CANCELLED)
        self.games.commit()
        return game

    def complete_game(self, game_id, organizer_id):
        game = self._organized_game(game_id, organizer_id)
        self._transition(game, GAME_ACTIVE, GAME_COMPLETED)
        self.games.commit()
        return game

    def delete_game(self, game_id, user):
        game = self.get_game(game_id)
        if game.organizer_id != user.id and not user.is_admin:
            raise PermissionDenied('Only the organizer can delete this game')
        for invite in GameInvite.query.filter_by(game_id=game.id).all():
            self.games.delete(invite)
        self.games.delete(game)
        self.games.commit()
        logger.info('Game %s deleted by user %s', game_id, user.id)

    def get_games_by_park(self, park_id):
        return self.games.by_park(park_id, OPEN_STATUSES)

    def get_user_games(self, user_id):
        return self.games.for_user(user_id)

    def get_upcoming_games(self, limit=UPCOMING_GAMES_LIMIT):
        return self.games.upcoming(self.clock(), limit)

    def join_game(self, game_id, user_id, user_name):
        game = self.get_game(game_id)
        if game.status not in OPEN_STATUSES:
            raise Conflict(f'Cannot join a {game.status} game')
        if user_id in game.player_ids:
            raise Conflict('Already joined this game')
        if game.is_full:
            raise Conflict('Game is full')
        game.players.append(GamePlayer(
            user_id=user_id, user_name=user_name or '', joined_at=self.clock(),
        ))
        try:
            self.games.commit()
        except IntegrityError:
            self.games.rollback()
            raise Conflict('Already joined this game')
        logger.info('User %s joined game %s (%s/%s)', user_id, game.id,
                    len(game.players), game.max_players)
        return game

    def leave_game(self, game_id, user_id):
        game = self.get_game(game_id)
        if game.organizer_id == user_id:
            raise ValidationError('The organizer cannot leave their own game')
        player = next((p for p in game.players if p.user_id == user_id), None)
        if player is None:
            return game
        game.players.remove(player)
        self.games.commit()
        return game

    def _recipients(self, sender_id, friend_ids, group_ids):
        candidate_ids = list(friend_ids or []) + self.users.group_member_ids(group_ids or [])
        recipients = []
        seen = {sender_id}
        for raw_id in candidate_ids:
            try:
                user_id = int(raw_id)
            except (TypeError, ValueError):
                continue
            if user_id in seen:
                continue
            seen.add(user_id)
            user = self.users.get(user_id)
            if not user or self.users.is_either_blocked(sender_id, user_id):
                continue
            recipients.append(user)
        return recipients

    def _send_invite(self, game, sender, invite_type, friend_ids, group_ids):
        recipients = self._recipients(sender.id, friend_ids, group_ids)
        if not recipients:
            return None
        court = self.parks.get_court(game.park_id, game.court_id) if game.court_id else None
        invite = GameInvite(
            game_id=game.id,
            park_id=game.park_id,
            park_name=game.park.name if game.park else '',
            court_id=game.court_id,
            court_number=court.court_number if court else None,
            sport_type=game.sport_type,
            sender_id=sender.id,
            sender_name=sender.public_name,
            invite_type=invite_type,
            scheduled_time=game.scheduled_time,
            created_at=self.clock(),
        )
        for user in recipients:
            invite.recipients.append(GameInviteRecipient(
                user_id=user.id, user_name=user.public_name,
            ))
        self.games.add(invite)
        return invite

    def start_playing_now(self, game_id, organizer, friend_ids=None, group_ids=None):
        game = self._organized_game(game_id, organizer.id)
        self._transition(game, GAME_SCHEDULED, GAME_ACTIVE)
        invite = self._send_invite(game, organizer, INVITE_NOW_PLAYING, friend_ids, group_ids)
        self.games.commit()
        return game, invite

    def invite_to_game(self, game_id, sender, friend_ids=None, group_ids=None):
        game = self.get_game(game_id)
        if game.status != GAME_SCHEDULED:
            raise Conflict('Only scheduled games accept invites')
        if sender.id not in game.player_ids:
            raise PermissionDenied('Only players can invite others')
        invite = self._send_invite(game, sender, INVITE_SCHEDULED_GAME, friend_ids, group_ids)
        if invite is None:
            raise ValidationError('No valid recipients')
        self.games.commit()
        return invite
