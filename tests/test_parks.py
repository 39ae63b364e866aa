"""Tests for park routes, moderation, and the aggregated park page."""
import json

from courtside.services.park_detail import (
    PARTIAL_LOAD_WARNING, SLOW_LOAD_WARNING, ParkDetailLoader,
)


PARK_PAYLOAD = {
    'name': 'Riverside Courts', 'address': '1 River Rd', 'city': 'Arcata', 'state': 'CA',
    'latitude': 40.8665, 'longitude': -124.0828,
    'amenities': ['restrooms', 'water'],
    'courts': [
        {'sport_type': 'basketball', 'condition': 'good', 'has_lighting': True},
        {'sport_type': 'pickleballDoubles', 'custom_name': 'East Court'},
    ],
}


def test_admin_park_is_auto_approved(client, admin_headers):
    res = client.post('/api/parks', json=PARK_PAYLOAD, headers=admin_headers)
    assert res.status_code == 201
    park = json.loads(res.data)['park']
    assert park['approved'] is True
    assert park['review_status'] == 'approved'
    assert park['amenities'] == ['restrooms', 'water']
    assert [c['court_number'] for c in park['courts']] == [1, 2]
    assert park['courts'][1]['sport_type'] == 'pickleball_doubles'
    assert park['courts'][1]['display_name'] == 'East Court'
    assert park['courts'][0]['display_name'] == 'Court 1'


def test_user_park_waits_for_review(client, auth_headers, admin_headers):
    res = client.post('/api/parks', json=PARK_PAYLOAD, headers=auth_headers)
    park = json.loads(res.data)['park']
    assert park['approved'] is False
    assert park['review_status'] == 'pending'

    # Hidden from search and anonymous readers until approved.
    assert json.loads(client.get('/api/parks').data)['parks'] == []
    assert client.get(f'/api/parks/{park["id"]}').status_code == 404
    assert client.get(f'/api/parks/{park["id"]}', headers=auth_headers).status_code == 200

    pending = json.loads(client.get('/api/parks/pending', headers=admin_headers).data)['parks']
    assert [p['id'] for p in pending] == [park['id']]

    res = client.post(f'/api/parks/{park["id"]}/approve',
        json={'message': 'Looks good'}, headers=admin_headers)
    approved = json.loads(res.data)['park']
    assert approved['approved'] is True
    assert approved['review_message'] == 'Looks good'
    assert approved['approved_by_user_id'] == approved['reviewed_by_user_id']
    assert len(json.loads(client.get('/api/parks').data)['parks']) == 1


def test_deny_park(client, auth_headers, admin_headers):
    park = json.loads(client.post('/api/parks', json=PARK_PAYLOAD, headers=auth_headers).data)['park']
    res = client.post(f'/api/parks/{park["id"]}/deny',
        json={'message': 'Duplicate'}, headers=admin_headers)
    denied = json.loads(res.data)['park']
    assert denied['review_status'] == 'denied'
    assert denied['approved'] is False
    pending = json.loads(client.get('/api/parks/pending', headers=admin_headers).data)['parks']
    assert pending == []


def test_pending_requires_admin(client, auth_headers):
    assert client.get('/api/parks/pending', headers=auth_headers).status_code == 403


def test_create_park_validation(client, auth_headers):
    res = client.post('/api/parks', json={'name': 'No Coordinates'}, headers=auth_headers)
    assert res.status_code == 400
    bad_court = dict(PARK_PAYLOAD, courts=[{'sport_type': 'curling'}])
    res = client.post('/api/parks', json=bad_court, headers=auth_headers)
    assert res.status_code == 400


def test_search_and_nearby(client, sample_park):
    res = client.get('/api/parks?q=test')
    assert [p['id'] for p in json.loads(res.data)['parks']] == [sample_park.id]

    res = client.get('/api/parks?city=Arcata')
    assert json.loads(res.data)['parks'] == []

    res = client.get('/api/parks?lat=40.80&lng=-124.16&radius=5')
    parks = json.loads(res.data)['parks']
    assert len(parks) == 1
    assert parks[0]['distance_miles'] < 5

    res = client.get('/api/parks?lat=34.05&lng=-118.24&radius=5')
    assert json.loads(res.data)['parks'] == []


def test_only_creator_or_admin_edits(client, auth_headers, sample_park):
    res = client.put(f'/api/parks/{sample_park.id}', json={'name': 'Mine Now'},
        headers=auth_headers)
    assert res.status_code == 403


def test_court_management(client, admin_headers, sample_park):
    res = client.post(f'/api/parks/{sample_park.id}/courts',
        json={'sport_type': 'tennis_singles', 'is_half_court': True}, headers=admin_headers)
    assert res.status_code == 201
    court = json.loads(res.data)['court']
    assert court['court_number'] == 4
    assert court['is_half_court'] is False  # half court is basketball only

    res = client.post(f'/api/parks/{sample_park.id}/courts',
        json={'court_number': 1}, headers=admin_headers)
    assert res.status_code == 409

    res = client.delete(f'/api/parks/{sample_park.id}/courts/{court["id"]}',
        headers=admin_headers)
    assert res.status_code == 200
    assert len(sample_park.courts) == 3


def test_delete_park_admin_only(client, auth_headers, admin_headers, sample_park):
    assert client.delete(f'/api/parks/{sample_park.id}', headers=auth_headers).status_code == 403
    assert client.delete(f'/api/parks/{sample_park.id}', headers=admin_headers).status_code == 200
    assert client.get(f'/api/parks/{sample_park.id}').status_code == 404


def test_park_detail_prunes_and_aggregates(client, clock, auth_headers, sample_park, services):
    court = sample_park.court_by_number(1)
    client.post(f'/api/parks/{sample_park.id}/courts/{court.id}/queue/join', headers=auth_headers)
    client.post('/api/checkins', json={'park_id': sample_park.id, 'court_number': 2},
        headers=auth_headers)
    clock.advance(minutes=61)

    res = client.get(f'/api/parks/{sample_park.id}/detail', headers=auth_headers)
    assert res.status_code == 200
    detail = json.loads(res.data)
    assert detail['warning'] is None
    assert detail['park']['courts'][0]['got_next_queue'] == []
    assert len(detail['check_ins']) == 1
    assert detail['active_check_in']['court_number'] == 2
    assert detail['is_favorite'] is False
    assert detail['reviews'] == []
    assert detail['games'] == []


def test_park_detail_reports_failed_section(app, services, sample_park, monkeypatch):
    def _boom(park_id):
        raise RuntimeError('reviews offline')

    monkeypatch.setattr(services.social, 'reviews_for_park', _boom)
    detail = services.park_detail.load(sample_park.id)

    assert detail['reviews'] is None
    assert detail['games'] == []
    assert detail['warning'] == PARTIAL_LOAD_WARNING


def test_park_detail_stops_at_deadline(app, services, sample_park):
    ticks = iter([0, 0, 11, 11, 11, 11])
    loader = ParkDetailLoader(
        services.parks, services.queue, services.checkins, services.games,
        services.social, timeout_seconds=10, timer=lambda: next(ticks),
    )
    detail = loader.load(sample_park.id)

    assert detail['park']['id'] == sample_park.id
    assert detail['reviews'] == []
    assert detail['games'] is None
    assert detail['warning'] == SLOW_LOAD_WARNING


def test_queue_routes(client, auth_headers, sample_park):
    court = sample_park.court_by_number(1)
    base = f'/api/parks/{sample_park.id}/courts/{court.id}/queue'

    res = client.post(f'{base}/join', headers=auth_headers)
    assert len(json.loads(res.data)['queue']) == 1
    res = client.post(f'{base}/refresh', headers=auth_headers)
    assert res.status_code == 200
    res = client.post(f'{base}/mark-playing', headers=auth_headers)
    body = json.loads(res.data)
    assert body['queue'] == []
    assert body['check_in']['player_count'] == 1
    res = client.post(f'{base}/leave', headers=auth_headers)
    assert json.loads(res.data)['removed'] is False

    res = client.post(f'/api/parks/{sample_park.id}/queue/cleanup', headers=auth_headers)
    assert json.loads(res.data)['removed'] == 0


def test_park_reads_hide_expired_queue_entries(client, clock, auth_headers, sample_park):
    court = sample_park.court_by_number(1)
    client.post(f'/api/parks/{sample_park.id}/courts/{court.id}/queue/join', headers=auth_headers)
    park = json.loads(client.get(f'/api/parks/{sample_park.id}').data)['park']
    assert len(park['courts'][0]['got_next_queue']) == 1

    clock.advance(minutes=61)

    park = json.loads(client.get(f'/api/parks/{sample_park.id}').data)['park']
    assert park['courts'][0]['got_next_queue'] == []
    listed = json.loads(client.get('/api/parks').data)['parks']
    assert listed[0]['courts'][0]['got_next_queue'] == []
    nearby = json.loads(client.get('/api/parks?lat=40.80&lng=-124.16&radius=5').data)['parks']
    assert nearby[0]['courts'][0]['got_next_queue'] == []


def test_occupied_court_cannot_be_renumbered_or_deleted(client, admin_headers, sample_park):
    court = sample_park.court_by_number(1)
    base = f'/api/parks/{sample_park.id}/courts/{court.id}'
    res = client.post('/api/checkins', json={
        'park_id': sample_park.id, 'court_number': 1, 'player_count': 2,
    }, headers=admin_headers)
    check_in_id = json.loads(res.data)['check_in']['id']

    assert client.put(base, json={'court_number': 9}, headers=admin_headers).status_code == 409
    assert client.delete(base, headers=admin_headers).status_code == 409
    # Edits that keep the number are fine.
    assert client.put(base, json={'custom_name': 'Main'}, headers=admin_headers).status_code == 200

    client.post(f'/api/checkins/{check_in_id}/checkout', headers=admin_headers)
    assert sample_park.court_by_number(1).player_count == 0
    res = client.put(base, json={'court_number': 9}, headers=admin_headers)
    assert json.loads(res.data)['court']['court_number'] == 9
