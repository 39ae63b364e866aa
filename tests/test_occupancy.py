"""Tests for court capacity rules and player counts."""
import pytest

from courtside.errors import ValidationError
from courtside.sports import max_players_for_court, normalize_sport_type


@pytest.mark.parametrize('sport, half, game_format, expected', [
    ('basketball', False, None, 10),
    ('basketball', True, None, 5),
    ('basketball', True, '3v3', 10),
    ('pickleball_singles', False, None, 4),
    ('pickleball_doubles', True, None, 4),
    ('tennis_doubles', False, None, 4),
])
def test_max_players_for_court(sport, half, game_format, expected):
    assert max_players_for_court(sport, half, game_format) == expected


def test_normalize_sport_type_accepts_camel_case():
    assert normalize_sport_type('pickleballDoubles') == 'pickleball_doubles'
    assert normalize_sport_type('Tennis Singles') == 'tennis_singles'
    assert normalize_sport_type('curling') == 'basketball'


def test_half_court_format_sets_exact_count(services, sample_park):
    half_court = sample_park.court_by_number(2)

    court = services.occupancy.update_court_player_count(
        sample_park.id, half_court.id, 3, game_format='3v3',
    )

    assert court.player_count == 6


def test_format_ceiling_survives_later_updates(services, sample_park, make_user):
    half_court = sample_park.court_by_number(2)
    services.occupancy.update_court_player_count(
        sample_park.id, half_court.id, None, game_format='3v3',
    )

    player = make_user('walkon')
    services.checkins.create_check_in(sample_park.id, player.id, 'walkon', 2, player_count=1)
    assert half_court.player_count == 7
    assert half_court.game_format == '3v3'
    assert half_court.max_players == 10

    court = services.occupancy.adjust_court_player_count(sample_park.id, 2, 8)
    assert court.player_count == 10

    services.occupancy.update_court_player_count(sample_park.id, half_court.id, 8)
    assert half_court.player_count == 8


def test_count_is_clamped_to_court_max(services, sample_park):
    full_court = sample_park.court_by_number(1)
    half_court = sample_park.court_by_number(2)
    pickleball = sample_park.court_by_number(3)

    assert services.occupancy.update_court_player_count(
        sample_park.id, full_court.id, 25).player_count == 10
    assert services.occupancy.update_court_player_count(
        sample_park.id, half_court.id, 9).player_count == 5
    assert services.occupancy.update_court_player_count(
        sample_park.id, pickleball.id, 7).player_count == 4
    assert services.occupancy.update_court_player_count(
        sample_park.id, full_court.id, -3).player_count == 0


def test_unknown_format_rejected(services, sample_park):
    with pytest.raises(ValidationError):
        services.occupancy.update_court_player_count(
            sample_park.id, sample_park.court_by_number(2).id, 4, game_format='6v6',
        )


def test_format_ignored_on_full_court(services, sample_park):
    court = services.occupancy.update_court_player_count(
        sample_park.id, sample_park.court_by_number(1).id, 7, game_format='2v2',
    )
    assert court.player_count == 7


def test_adjust_never_goes_negative(services, sample_park):
    court = services.occupancy.adjust_court_player_count(sample_park.id, 1, -4)
    assert court.player_count == 0


def test_reconcile_recounts_from_active_check_ins(services, sample_park, make_user):
    from courtside.app import db
    alice = make_user('alice')
    bob = make_user('bob')
    services.checkins.create_check_in(sample_park.id, alice.id, 'alice', 1, player_count=4)
    services.checkins.create_check_in(sample_park.id, bob.id, 'bob', 1, player_count=3)

    # Drift the stored counts away from the ledger.
    court = sample_park.court_by_number(1)
    court.player_count = 0
    sample_park.court_by_number(3).player_count = 2
    db.session.commit()

    changed = services.occupancy.reconcile_park(sample_park.id)

    assert changed == 2
    assert sample_park.court_by_number(1).player_count == 7
    assert sample_park.court_by_number(3).player_count == 0


def test_switching_to_half_court_clamps_count(client, admin_headers, sample_park):
    court = sample_park.court_by_number(1)
    client.put(
        f'/api/parks/{sample_park.id}/courts/{court.id}/player-count',
        json={'player_count': 9}, headers=admin_headers,
    )

    res = client.put(
        f'/api/parks/{sample_park.id}/courts/{court.id}',
        json={'is_half_court': True}, headers=admin_headers,
    )

    assert res.status_code == 200
    data = res.get_json()['court']
    assert data['is_half_court'] is True
    assert data['player_count'] == 5
    assert data['max_players'] == 5


def test_court_edits_respect_stored_format(client, admin_headers, sample_park):
    court = sample_park.court_by_number(2)
    base = f'/api/parks/{sample_park.id}/courts/{court.id}'
    client.put(f'{base}/player-count', json={'game_format': '3v3'}, headers=admin_headers)

    res = client.put(base, json={'condition': 'fair'}, headers=admin_headers)
    data = res.get_json()['court']
    assert data['game_format'] == '3v3'
    assert data['player_count'] == 6

    res = client.put(base, json={'game_format': ''}, headers=admin_headers)
    data = res.get_json()['court']
    assert data['game_format'] is None
    assert data['player_count'] == 5

    res = client.put(base, json={'game_format': '6v6'}, headers=admin_headers)
    assert res.status_code == 400


def test_full_court_drops_format(client, admin_headers, sample_park):
    court = sample_park.court_by_number(2)
    base = f'/api/parks/{sample_park.id}/courts/{court.id}'
    client.put(f'{base}/player-count', json={'game_format': '4v4'}, headers=admin_headers)

    res = client.put(base, json={'is_half_court': False}, headers=admin_headers)
    data = res.get_json()['court']
    assert data['game_format'] is None
    assert data['player_count'] == 8
    assert data['max_players'] == 10


def test_player_count_route_with_format(client, auth_headers, sample_park):
    court = sample_park.court_by_number(2)
    res = client.put(
        f'/api/parks/{sample_park.id}/courts/{court.id}/player-count',
        json={'game_format': '5v5'}, headers=auth_headers,
    )
    assert res.status_code == 200
    assert res.get_json()['court']['player_count'] == 10


def test_player_count_route_requires_a_number(client, auth_headers, sample_park):
    court = sample_park.court_by_number(1)
    res = client.put(
        f'/api/parks/{sample_park.id}/courts/{court.id}/player-count',
        json={'player_count': 'lots'}, headers=auth_headers,
    )
    assert res.status_code == 400
