"""Application service bundle, built once per app in ``create_app``."""
from flask import current_app

from courtside.repositories import (
    CheckInRepository, GameRepository, ParkRepository, UserDirectory,
)
from courtside.time_utils import utcnow_naive


class Services:
    def __init__(self, parks, occupancy, queue, checkins, games, social, park_detail):
        self.parks = parks
        self.occupancy = occupancy
        self.queue = queue
        self.checkins = checkins
        self.games = games
        self.social = social
        self.park_detail = park_detail


def build_services(app_config, clock=utcnow_naive):
    from courtside.services.checkin_ledger import CheckInLedger
    from courtside.services.game_scheduler import GameScheduler
    from courtside.services.occupancy import OccupancyTracker
    from courtside.services.park_detail import ParkDetailLoader
    from courtside.services.park_registry import ParkRegistry
    from courtside.services.queue_manager import QueueManager
    from courtside.services.social import SocialService

    park_repo = ParkRepository()
    checkin_repo = CheckInRepository()
    game_repo = GameRepository()
    users = UserDirectory()

    occupancy = OccupancyTracker(park_repo, checkin_repo, clock=clock)
    checkins = CheckInLedger(
        checkin_repo, park_repo, occupancy,
        history_limit=app_config.get('CHECKIN_HISTORY_LIMIT', 50),
        clock=clock,
    )
    queue = QueueManager(
        park_repo, checkins,
        timeout_minutes=app_config.get('QUEUE_TIMEOUT_MINUTES', 60),
        clock=clock,
    )
    parks = ParkRegistry(park_repo, checkin_repo, clock=clock)
    social = SocialService(users, park_repo, game_repo, clock=clock)
    games = GameScheduler(game_repo, park_repo, users, clock=clock)
    park_detail = ParkDetailLoader(
        parks, queue, checkins, games, social,
        timeout_seconds=app_config.get('PARK_DETAIL_LOAD_TIMEOUT_SECONDS', 10),
    )
    return Services(parks, occupancy, queue, checkins, games, social, park_detail)


def get_services():
    return current_app.extensions['courtside']
