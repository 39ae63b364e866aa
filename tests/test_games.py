"""Tests for scheduled pickup games."""
import json
from datetime import datetime, timedelta, timezone

import pytest

from courtside.errors import Conflict, PermissionDenied, ValidationError
from courtside.models import GameInvite


def _auth(client, username='gameuser', email='game@test.com'):
    res = client.post('/api/auth/register', json={
        'username': username, 'email': email, 'password': 'password123',
    })
    return json.loads(res.data)['token']


def _headers(token):
    return {'Authorization': f'Bearer {token}'}


def _create_game(client, token, park_id, **overrides):
    data = {
        'park_id': park_id,
        'scheduled_time': (datetime.now(timezone.utc) + timedelta(days=1)).isoformat(),
    }
    data.update(overrides)
    res = client.post('/api/games', json=data, headers=_headers(token))
    return res


def test_create_game_defaults(client, sample_park):
    token = _auth(client)
    res = _create_game(client, token, sample_park.id)
    assert res.status_code == 201
    game = json.loads(res.data)['game']
    assert game['status'] == 'scheduled'
    assert game['max_players'] == 10
    assert game['player_count'] == 1
    assert game['park_name'] == 'Test Park'


def test_create_game_requires_valid_time(client, sample_park):
    token = _auth(client)
    res = _create_game(client, token, sample_park.id, scheduled_time='tomorrow-ish')
    assert res.status_code == 400


def test_eleventh_player_is_rejected(services, sample_park, make_user):
    organizer = make_user('organizer')
    game = services.games.create_game(
        sample_park.id, organizer, datetime(2024, 6, 2, 18, 0), max_players=10,
    )
    for n in range(9):
        player = make_user(f'player{n}')
        services.games.join_game(game.id, player.id, player.username)

    assert len(services.games.get_game(game.id).player_ids) == 10
    late = make_user('latecomer')
    with pytest.raises(Conflict):
        services.games.join_game(game.id, late.id, 'latecomer')
    assert len(services.games.get_game(game.id).player_ids) == 10


def test_join_twice_rejected(client, sample_park):
    organizer = _auth(client)
    joiner = _auth(client, 'joiner', 'joiner@test.com')
    game = json.loads(_create_game(client, organizer, sample_park.id).data)['game']

    res = client.post(f'/api/games/{game["id"]}/join', headers=_headers(joiner))
    assert res.status_code == 200
    assert json.loads(res.data)['game']['player_names'] == ['gameuser', 'joiner']

    res = client.post(f'/api/games/{game["id"]}/join', headers=_headers(joiner))
    assert res.status_code == 409


def test_leave_game(client, sample_park):
    organizer = _auth(client)
    joiner = _auth(client, 'joiner', 'joiner@test.com')
    game = json.loads(_create_game(client, organizer, sample_park.id).data)['game']
    client.post(f'/api/games/{game["id"]}/join', headers=_headers(joiner))

    res = client.post(f'/api/games/{game["id"]}/leave', headers=_headers(joiner))
    assert json.loads(res.data)['game']['player_count'] == 1

    # Leaving again is a no-op.
    res = client.post(f'/api/games/{game["id"]}/leave', headers=_headers(joiner))
    assert res.status_code == 200

    res = client.post(f'/api/games/{game["id"]}/leave', headers=_headers(organizer))
    assert res.status_code == 400


def test_state_transitions(services, sample_park, make_user):
    organizer = make_user('organizer')
    other = make_user('other')
    game = services.games.create_game(sample_park.id, organizer, datetime(2024, 6, 2, 18, 0))

    with pytest.raises(Conflict):
        services.games.complete_game(game.id, organizer.id)
    with pytest.raises(PermissionDenied):
        services.games.start_playing_now(game.id, other)

    game, _ = services.games.start_playing_now(game.id, organizer)
    assert game.status == 'active'
    with pytest.raises(Conflict):
        services.games.cancel_game(game.id, organizer.id)

    game = services.games.complete_game(game.id, organizer.id)
    assert game.status == 'completed'

    with pytest.raises(Conflict):
        services.games.join_game(game.id, other.id, 'other')


def test_cancelled_game_leaves_park_listing(client, sample_park):
    token = _auth(client)
    game = json.loads(_create_game(client, token, sample_park.id).data)['game']

    res = client.post(f'/api/games/{game["id"]}/cancel', headers=_headers(token))
    assert json.loads(res.data)['game']['status'] == 'cancelled'

    res = client.get(f'/api/games?park_id={sample_park.id}')
    assert json.loads(res.data)['games'] == []


def test_park_games_sorted_ascending(services, sample_park, make_user):
    organizer = make_user('organizer')
    later = services.games.create_game(sample_park.id, organizer, datetime(2024, 6, 3, 9, 0))
    sooner = services.games.create_game(sample_park.id, organizer, datetime(2024, 6, 2, 9, 0))

    games = services.games.get_games_by_park(sample_park.id)
    assert [g.id for g in games] == [sooner.id, later.id]
    mine = services.games.get_user_games(organizer.id)
    assert [g.id for g in mine] == [later.id, sooner.id]


def test_upcoming_games_skip_past(services, clock, sample_park, make_user):
    organizer = make_user('organizer')
    services.games.create_game(sample_park.id, organizer, clock.now - timedelta(hours=1))
    future = services.games.create_game(sample_park.id, organizer, clock.now + timedelta(hours=1))

    assert [g.id for g in services.games.get_upcoming_games()] == [future.id]


def test_start_playing_now_invites_friends_and_groups(services, sample_park, make_user):
    from courtside.models import Friendship
    from courtside.app import db
    organizer = make_user('organizer')
    friend = make_user('friend')
    member = make_user('member')
    blocked = make_user('blocked')
    db.session.add(Friendship(user_id=organizer.id, friend_id=friend.id, status='accepted'))
    db.session.commit()
    group = services.social.create_group(organizer, 'Regulars', [member.id, friend.id])
    services.social.block_user(blocked, organizer.id)

    game = services.games.create_game(sample_park.id, organizer, datetime(2024, 6, 2, 18, 0))
    _, invite = services.games.start_playing_now(
        game.id, organizer, friend_ids=[friend.id, blocked.id], group_ids=[group.id],
    )

    assert invite.invite_type == 'now_playing'
    recipient_ids = sorted(r.user_id for r in invite.recipients)
    assert recipient_ids == sorted([friend.id, member.id])
    assert [i.id for i in services.social.invites_for_user(member.id)] == [invite.id]


def test_invite_to_scheduled_game(client, sample_park):
    organizer = _auth(client)
    friend = _auth(client, 'friend', 'friend@test.com')
    game = json.loads(_create_game(client, organizer, sample_park.id).data)['game']
    friend_id = json.loads(client.get('/api/auth/profile', headers=_headers(friend)).data)['user']['id']

    res = client.post(f'/api/games/{game["id"]}/invite',
        json={'friend_ids': [friend_id]}, headers=_headers(organizer))
    assert res.status_code == 201
    assert json.loads(res.data)['invite']['invite_type'] == 'scheduled_game'

    res = client.get('/api/invites', headers=_headers(friend))
    invites = json.loads(res.data)['invites']
    assert len(invites) == 1
    assert invites[0]['game_id'] == game['id']

    res = client.delete(f'/api/invites/{invites[0]["id"]}', headers=_headers(friend))
    assert res.status_code == 200
    assert GameInvite.query.count() == 1


def test_update_game_cannot_shrink_below_roster(services, sample_park, make_user):
    organizer = make_user('organizer')
    game = services.games.create_game(sample_park.id, organizer, datetime(2024, 6, 2, 18, 0))
    for n in range(3):
        player = make_user(f'p{n}')
        services.games.join_game(game.id, player.id, player.username)

    with pytest.raises(ValidationError):
        services.games.update_game(game.id, organizer.id, max_players=3)
    assert services.games.update_game(game.id, organizer.id, max_players=4).max_players == 4


def test_only_organizer_deletes(client, sample_park):
    organizer = _auth(client)
    other = _auth(client, 'other', 'other@test.com')
    game = json.loads(_create_game(client, organizer, sample_park.id).data)['game']

    res = client.delete(f'/api/games/{game["id"]}', headers=_headers(other))
    assert res.status_code == 403
    res = client.delete(f'/api/games/{game["id"]}', headers=_headers(organizer))
    assert res.status_code == 200
    res = client.get(f'/api/games/{game["id"]}')
    assert res.status_code == 404
