"""Friends, blocks, favorites, groups, reviews, reports and invites."""
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from courtside.errors import Conflict, NotFound, PermissionDenied, ValidationError
from courtside.models import (
    FavoritePark, FriendGroup, FriendGroupMember, Friendship, GameInviteRecipient,
    GroupMessage, Park, Review, UserBlock, UserReport,
)
from courtside.time_utils import utcnow_naive

logger = logging.getLogger(__name__)

REPORT_TARGET_TYPES = ('profile', 'review', 'message')
REPORT_STATUSES = ('open', 'reviewed', 'action_taken')
MAX_MESSAGE_LENGTH = 2000
GROUP_MESSAGE_PAGE_SIZE = 100


class SocialService:
    def __init__(self, user_directory, park_repo, game_repo, clock=utcnow_naive):
        self.users = user_directory
        self.parks = park_repo
        self.games = game_repo
        self.clock = clock

    def _user_or_404(self, user_id):
        user = self.users.get(user_id)
        if not user:
            raise NotFound('User not found')
        return user

    def _park_or_404(self, park_id):
        park = self.parks.get(park_id)
        if not park:
            raise NotFound('Park not found')
        return park

    # ── Friends ───────────────────────────────────────────────────────

    def send_friend_request(self, user, friend_id):
        if friend_id == user.id:
            raise ValidationError('Cannot friend yourself')
        self._user_or_404(friend_id)
        if self.users.is_either_blocked(user.id, friend_id):
            raise PermissionDenied('Cannot send a friend request to this user')
        existing = self.users.friendship_between(user.id, friend_id)
        if existing and existing.status in ('pending', 'accepted'):
            raise Conflict('Friend request already exists')
        if existing:
            self.users.delete(existing)
        friendship = Friendship(
            user_id=user.id, friend_id=friend_id, status='pending', created_at=self.clock(),
        )
        self.users.add(friendship)
        self.users.commit()
        return friendship

    def respond_to_friend_request(self, user, request_id, accept):
        friendship = self.users.session.get(Friendship, request_id)
        if not friendship or friendship.friend_id != user.id:
            raise NotFound('Friend request not found')
        if friendship.status != 'pending':
            raise Conflict('Friend request already answered')
        friendship.status = 'accepted' if accept else 'declined'
        self.users.commit()
        return friendship

    def remove_friend(self, user, friend_id):
        friendship = self.users.friendship_between(user.id, friend_id)
        if not friendship:
            raise NotFound('Not friends')
        self.users.delete(friendship)
        self.users.commit()

    def list_friends(self, user_id):
        return [
            friend for friend in
            (self.users.get(fid) for fid in self.users.friend_ids(user_id))
            if friend
        ]

    def pending_friend_requests(self, user_id):
        return Friendship.query.filter_by(friend_id=user_id, status='pending').order_by(
            Friendship.created_at.desc()
        ).all()

    # ── Blocks ────────────────────────────────────────────────────────

    def block_user(self, user, blocked_user_id):
        if blocked_user_id == user.id:
            raise ValidationError('Cannot block yourself')
        self._user_or_404(blocked_user_id)
        existing = UserBlock.query.filter_by(
            user_id=user.id, blocked_user_id=blocked_user_id
        ).first()
        if existing:
            return existing
        # Blocking ends any friendship or pending request.
        friendship = self.users.friendship_between(user.id, blocked_user_id)
        if friendship:
            self.users.delete(friendship)
        block = UserBlock(
            user_id=user.id, blocked_user_id=blocked_user_id, created_at=self.clock(),
        )
        self.users.add(block)
        self.users.commit()
        logger.info('User %s blocked user %s', user.id, blocked_user_id)
        return block

    def unblock_user(self, user, blocked_user_id):
        block = UserBlock.query.filter_by(
            user_id=user.id, blocked_user_id=blocked_user_id
        ).first()
        if not block:
            return False
        self.users.delete(block)
        self.users.commit()
        return True

    def blocked_users(self, user_id):
        rows = UserBlock.query.filter_by(user_id=user_id).all()
        return [u for u in (self.users.get(r.blocked_user_id) for r in rows) if u]

    # ── Favorites ─────────────────────────────────────────────────────

    def add_favorite(self, user_id, park_id):
        self._park_or_404(park_id)
        existing = FavoritePark.query.filter_by(user_id=user_id, park_id=park_id).first()
        if existing:
            return existing
        favorite = FavoritePark(user_id=user_id, park_id=park_id, created_at=self.clock())
        self.users.add(favorite)
        try:
            self.users.commit()
        except IntegrityError:
            self.users.rollback()
            return FavoritePark.query.filter_by(user_id=user_id, park_id=park_id).first()
        return favorite

    def remove_favorite(self, user_id, park_id):
        favorite = FavoritePark.query.filter_by(user_id=user_id, park_id=park_id).first()
        if not favorite:
            return False
        self.users.delete(favorite)
        self.users.commit()
        return True

    def is_favorite(self, user_id, park_id):
        return FavoritePark.query.filter_by(user_id=user_id, park_id=park_id).first() is not None

    def favorite_parks(self, user_id):
        return Park.query.join(FavoritePark, FavoritePark.park_id == Park.id).filter(
            FavoritePark.user_id == user_id,
        ).order_by(FavoritePark.created_at.desc()).all()

    # ── Groups ────────────────────────────────────────────────────────

    def _group_or_404(self, group_id):
        group = self.users.session.get(FriendGroup, group_id)
        if not group:
            raise NotFound('Group not found')
        return group

    def _member_group(self, group_id, user_id):
        group = self._group_or_404(group_id)
        if user_id not in group.member_ids:
            raise PermissionDenied('Not a member of this group')
        return group

    def create_group(self, creator, name, member_ids=None):
        name = str(name or '').strip()[:120]
        if not name:
            raise ValidationError('Group name is required')
        now = self.clock()
        group = FriendGroup(name=name, creator_id=creator.id, created_at=now, updated_at=now)
        group.members.append(FriendGroupMember(user_id=creator.id, user_name=creator.public_name))
        for member_id in member_ids or []:
            self._append_member(group, member_id)
        self.users.add(group)
        self.users.commit()
        return group

    def _append_member(self, group, member_id):
        try:
            member_id = int(member_id)
        except (TypeError, ValueError):
            raise ValidationError('Invalid member id')
        if member_id in group.member_ids:
            return
        member = self._user_or_404(member_id)
        if self.users.is_either_blocked(group.creator_id, member_id):
            raise PermissionDenied('Cannot add this user to the group')
        group.members.append(FriendGroupMember(user_id=member.id, user_name=member.public_name))

    def groups_for_user(self, user_id):
        return FriendGroup.query.join(FriendGroupMember).filter(
            FriendGroupMember.user_id == user_id,
        ).order_by(FriendGroup.updated_at.desc()).all()

    def get_group(self, group_id, user_id):
        return self._member_group(group_id, user_id)

    def rename_group(self, group_id, user_id, name):
        group = self._group_or_404(group_id)
        if group.creator_id != user_id:
            raise PermissionDenied('Only the group creator can rename it')
        name = str(name or '').strip()[:120]
        if not name:
            raise ValidationError('Group name is required')
        group.name = name
        group.updated_at = self.clock()
        self.users.commit()
        return group

    def add_group_member(self, group_id, user_id, member_id):
        group = self._group_or_404(group_id)
        if group.creator_id != user_id:
            raise PermissionDenied('Only the group creator can add members')
        self._append_member(group, member_id)
        group.updated_at = self.clock()
        self.users.commit()
        return group

    def remove_group_member(self, group_id, user_id, member_id):
        group = self._group_or_404(group_id)
        # Members may leave; only the creator removes others.
        if member_id != user_id and group.creator_id != user_id:
            raise PermissionDenied('Only the group creator can remove members')
        if member_id == group.creator_id:
            raise ValidationError('The creator cannot leave; delete the group instead')
        member = next((m for m in group.members if m.user_id == member_id), None)
        if member is None:
            raise NotFound('Not a member of this group')
        group.members.remove(member)
        group.updated_at = self.clock()
        self.users.commit()
        return group

    def delete_group(self, group_id, user_id):
        group = self._group_or_404(group_id)
        if group.creator_id != user_id:
            raise PermissionDenied('Only the group creator can delete it')
        self.users.delete(group)
        self.users.commit()

    def post_group_message(self, group_id, sender, content):
        group = self._member_group(group_id, sender.id)
        content = str(content or '').strip()
        if not content:
            raise ValidationError('Message cannot be empty')
        if len(content) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f'Message must be {MAX_MESSAGE_LENGTH} characters or fewer')
        now = self.clock()
        message = GroupMessage(
            group_id=group.id, sender_id=sender.id, sender_name=sender.public_name,
            content=content, created_at=now,
        )
        group.updated_at = now
        self.users.add(message)
        self.users.commit()
        return message

    def group_messages(self, group_id, user_id, limit=GROUP_MESSAGE_PAGE_SIZE):
        group = self._member_group(group_id, user_id)
        rows = group.messages.order_by(
            GroupMessage.created_at.desc(), GroupMessage.id.desc()
        ).limit(limit).all()
        return list(reversed(rows))

    # ── Reviews ───────────────────────────────────────────────────────

    def _recompute_rating(self, park):
        average, total = self.users.session.query(
            func.avg(Review.rating), func.count(Review.id)
        ).filter(Review.park_id == park.id).one()
        park.total_reviews = int(total or 0)
        park.average_rating = round(float(average), 2) if average is not None else 0.0

    @staticmethod
    def _parse_rating(raw_rating):
        try:
            rating = float(raw_rating)
        except (TypeError, ValueError):
            raise ValidationError('rating must be a number')
        if rating < 1 or rating > 5:
            raise ValidationError('rating must be between 1 and 5')
        return rating

    def reviews_for_park(self, park_id):
        return Review.query.filter_by(park_id=park_id).order_by(
            Review.created_at.desc(), Review.id.desc()
        ).all()

    def add_review(self, park_id, user, rating, comment=''):
        park = self._park_or_404(park_id)
        rating = self._parse_rating(rating)
        now = self.clock()
        review = Review(
            park_id=park.id, user_id=user.id, user_name=user.public_name,
            rating=rating, comment=str(comment or '').strip()[:2000],
            created_at=now, updated_at=now,
        )
        self.users.add(review)
        self.users.flush()
        self._recompute_rating(park)
        self.users.commit()
        return review

    def _owned_review(self, review_id, user):
        review = self.users.session.get(Review, review_id)
        if not review:
            raise NotFound('Review not found')
        if review.user_id != user.id and not user.is_admin:
            raise PermissionDenied('Not your review')
        return review

    def update_review(self, review_id, user, rating=None, comment=None):
        review = self._owned_review(review_id, user)
        if rating is not None:
            review.rating = self._parse_rating(rating)
        if comment is not None:
            review.comment = str(comment).strip()[:2000]
        review.updated_at = self.clock()
        self.users.flush()
        self._recompute_rating(self._park_or_404(review.park_id))
        self.users.commit()
        return review

    def delete_review(self, review_id, user):
        review = self._owned_review(review_id, user)
        park = self._park_or_404(review.park_id)
        self.users.delete(review)
        self.users.flush()
        self._recompute_rating(park)
        self.users.commit()

    # ── Reports ───────────────────────────────────────────────────────

    def create_report(self, reporter, target_type, target_id, reason, notes=None):
        if target_type not in REPORT_TARGET_TYPES:
            raise ValidationError(f'target_type must be one of: {", ".join(REPORT_TARGET_TYPES)}')
        try:
            target_id = int(target_id)
        except (TypeError, ValueError):
            raise ValidationError('target_id is required')
        reason = str(reason or '').strip()[:100]
        if not reason:
            raise ValidationError('reason is required')
        report = UserReport(
            reporter_id=reporter.id, reporter_name=reporter.public_name,
            target_type=target_type, target_id=target_id, reason=reason,
            notes=(str(notes).strip() or None) if notes else None,
            status='open', created_at=self.clock(),
        )
        self.users.add(report)
        self.users.commit()
        logger.info('Report %s filed on %s %s', report.id, target_type, target_id)
        return report

    def list_reports(self, status=None):
        query = UserReport.query
        if status:
            query = query.filter_by(status=status)
        return query.order_by(UserReport.created_at.desc()).all()

    def update_report_status(self, report_id, status):
        if status not in REPORT_STATUSES:
            raise ValidationError(f'status must be one of: {", ".join(REPORT_STATUSES)}')
        report = self.users.session.get(UserReport, report_id)
        if not report:
            raise NotFound('Report not found')
        report.status = status
        self.users.commit()
        return report

    # ── Invites ───────────────────────────────────────────────────────

    def invites_for_user(self, user_id):
        return self.games.invites_for_user(user_id)

    def dismiss_invite(self, invite_id, user_id):
        recipient = GameInviteRecipient.query.filter_by(
            invite_id=invite_id, user_id=user_id
        ).first()
        if not recipient:
            raise NotFound('Invite not found')
        self.users.delete(recipient)
        self.users.commit()
