"""Tests for friends, blocks, favorites, groups, reviews and reports."""
import json

import pytest

from courtside.errors import PermissionDenied


def _register(client, username):
    res = client.post('/api/auth/register', json={
        'username': username, 'email': f'{username}@test.com', 'password': 'password123',
    })
    data = json.loads(res.data)
    return data['token'], data['user']['id']


def _headers(token):
    return {'Authorization': f'Bearer {token}'}


def test_friend_request_flow(client):
    alice, _ = _register(client, 'alice')
    bob, bob_id = _register(client, 'bob')

    res = client.post('/api/users/friends/request', json={'friend_id': bob_id},
        headers=_headers(alice))
    assert res.status_code == 201
    request_id = json.loads(res.data)['request_id']

    pending = json.loads(client.get('/api/users/friends/pending', headers=_headers(bob)).data)
    assert [r['id'] for r in pending['requests']] == [request_id]

    res = client.post('/api/users/friends/respond',
        json={'request_id': request_id, 'action': 'accept'}, headers=_headers(bob))
    assert res.status_code == 200

    friends = json.loads(client.get('/api/users/friends', headers=_headers(alice)).data)['friends']
    assert [f['username'] for f in friends] == ['bob']

    res = client.post('/api/users/friends/request', json={'friend_id': bob_id},
        headers=_headers(alice))
    assert res.status_code == 409


def test_block_prevents_friend_request(client):
    alice, alice_id = _register(client, 'alice')
    bob, bob_id = _register(client, 'bob')

    client.post(f'/api/users/blocks/{alice_id}', headers=_headers(bob))

    res = client.post('/api/users/friends/request', json={'friend_id': bob_id},
        headers=_headers(alice))
    assert res.status_code == 403

    res = client.get('/api/users/search?q=bo', headers=_headers(alice))
    assert json.loads(res.data)['users'] == []

    client.delete(f'/api/users/blocks/{alice_id}', headers=_headers(bob))
    res = client.post('/api/users/friends/request', json={'friend_id': bob_id},
        headers=_headers(alice))
    assert res.status_code == 201


def test_favorites(client, sample_park):
    token, _ = _register(client, 'fan')
    client.post(f'/api/users/favorites/{sample_park.id}', headers=_headers(token))
    client.post(f'/api/users/favorites/{sample_park.id}', headers=_headers(token))

    parks = json.loads(client.get('/api/users/favorites', headers=_headers(token)).data)['parks']
    assert [p['id'] for p in parks] == [sample_park.id]

    detail = json.loads(client.get(f'/api/parks/{sample_park.id}/detail',
        headers=_headers(token)).data)
    assert detail['is_favorite'] is True

    client.delete(f'/api/users/favorites/{sample_park.id}', headers=_headers(token))
    parks = json.loads(client.get('/api/users/favorites', headers=_headers(token)).data)['parks']
    assert parks == []


def test_reviews_recompute_park_rating(client, sample_park):
    alice, _ = _register(client, 'alice')
    bob, _ = _register(client, 'bob')

    client.post('/api/reviews', json={'park_id': sample_park.id, 'rating': 5},
        headers=_headers(alice))
    res = client.post('/api/reviews', json={'park_id': sample_park.id, 'rating': 2,
        'comment': 'Rims are bent'}, headers=_headers(bob))
    review_id = json.loads(res.data)['review']['id']

    park = json.loads(client.get(f'/api/parks/{sample_park.id}').data)['park']
    assert park['total_reviews'] == 2
    assert park['average_rating'] == 3.5

    res = client.put(f'/api/reviews/{review_id}', json={'rating': 4}, headers=_headers(alice))
    assert res.status_code == 403

    client.delete(f'/api/reviews/{review_id}', headers=_headers(bob))
    park = json.loads(client.get(f'/api/parks/{sample_park.id}').data)['park']
    assert park['total_reviews'] == 1
    assert park['average_rating'] == 5.0


def test_review_rating_bounds(client, sample_park):
    token, _ = _register(client, 'critic')
    res = client.post('/api/reviews', json={'park_id': sample_park.id, 'rating': 6},
        headers=_headers(token))
    assert res.status_code == 400


def test_groups_and_messages(client):
    owner, _ = _register(client, 'owner')
    member, member_id = _register(client, 'member')
    outsider, _ = _register(client, 'outsider')

    res = client.post('/api/groups', json={'name': 'Sunday Run', 'member_ids': [member_id]},
        headers=_headers(owner))
    assert res.status_code == 201
    group = json.loads(res.data)['group']
    assert group['member_names'] == ['owner', 'member']

    res = client.post(f'/api/groups/{group["id"]}/messages', json={'content': 'Who is in?'},
        headers=_headers(member))
    assert res.status_code == 201

    messages = json.loads(client.get(f'/api/groups/{group["id"]}/messages',
        headers=_headers(owner)).data)['messages']
    assert [m['content'] for m in messages] == ['Who is in?']

    res = client.get(f'/api/groups/{group["id"]}/messages', headers=_headers(outsider))
    assert res.status_code == 403

    res = client.delete(f'/api/groups/{group["id"]}/members/{member_id}',
        headers=_headers(member))
    assert json.loads(res.data)['group']['member_names'] == ['owner']


def test_only_creator_deletes_group(services, make_user):
    owner = make_user('owner')
    member = make_user('member')
    group = services.social.create_group(owner, 'Crew', [member.id])

    with pytest.raises(PermissionDenied):
        services.social.delete_group(group.id, member.id)
    services.social.delete_group(group.id, owner.id)
    assert services.social.groups_for_user(owner.id) == []


def test_reports(client, admin_headers):
    token, user_id = _register(client, 'reporter')
    res = client.post('/api/reports', json={
        'target_type': 'profile', 'target_id': user_id, 'reason': 'spam',
    }, headers=_headers(token))
    assert res.status_code == 201
    report = json.loads(res.data)['report']
    assert report['status'] == 'open'

    res = client.post('/api/reports', json={
        'target_type': 'park', 'target_id': 1, 'reason': 'spam',
    }, headers=_headers(token))
    assert res.status_code == 400

    assert client.get('/api/reports', headers=_headers(token)).status_code == 403
    res = client.put(f'/api/reports/{report["id"]}', json={'status': 'action_taken'},
        headers=admin_headers)
    assert json.loads(res.data)['report']['status'] == 'action_taken'
    reports = json.loads(client.get('/api/reports?status=open', headers=admin_headers).data)
    assert reports['reports'] == []
