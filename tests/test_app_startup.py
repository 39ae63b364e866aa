"""Tests for app startup helpers and production origin handling."""
import pytest
from sqlalchemy import inspect

from courtside.app import _ensure_query_indexes, _parse_allowed_origins, create_app, db
from courtside.config import ProductionConfig


def test_parse_allowed_origins():
    assert _parse_allowed_origins('') == '*'
    assert _parse_allowed_origins('*') == '*'
    assert _parse_allowed_origins('https://a.example.com, https://b.example.com') == [
        'https://a.example.com', 'https://b.example.com',
    ]
    assert _parse_allowed_origins(['https://a.example.com', '']) == ['https://a.example.com']
    assert _parse_allowed_origins(' , ') == '*'


def test_production_requires_real_secret_key(monkeypatch):
    monkeypatch.setattr(ProductionConfig, 'SECRET_KEY', 'dev-secret-key-change-in-prod')
    monkeypatch.setattr(ProductionConfig, 'CORS_ALLOWED_ORIGINS', 'https://app.example.com')
    monkeypatch.setattr(ProductionConfig, 'SQLALCHEMY_DATABASE_URI', 'sqlite:///:memory:')
    with pytest.raises(RuntimeError, match='SECRET_KEY'):
        create_app('production')


def test_production_requires_explicit_origins(monkeypatch):
    monkeypatch.setattr(ProductionConfig, 'SECRET_KEY', 'a-real-secret')
    monkeypatch.setattr(ProductionConfig, 'CORS_ALLOWED_ORIGINS', '*')
    monkeypatch.setattr(ProductionConfig, 'SQLALCHEMY_DATABASE_URI', 'sqlite:///:memory:')
    with pytest.raises(RuntimeError, match='CORS_ALLOWED_ORIGINS'):
        create_app('production')


def test_unlisted_origin_is_rejected_for_writes(app, client):
    app.config['CORS_ALLOWED_ORIGINS'] = 'https://app.example.com'
    res = client.post('/api/auth/login', json={'email': 'x@test.com', 'password': 'password1'},
        headers={'Origin': 'https://evil.example.com'})
    assert res.status_code == 403

    res = client.post('/api/auth/login', json={'email': 'x@test.com', 'password': 'password1'},
        headers={'Origin': 'https://app.example.com'})
    assert res.status_code == 401


def test_health(client):
    assert client.get('/api/health').get_json() == {'status': 'ok'}


def test_startup_only_adds_query_indexes(app):
    park_columns = {c['name'] for c in inspect(db.engine).get_columns('park')}

    _ensure_query_indexes()
    _ensure_query_indexes()

    inspector = inspect(db.engine)
    assert 'ix_park_review_status' in {i['name'] for i in inspector.get_indexes('park')}
    assert 'ix_check_in_user_time' in {i['name'] for i in inspector.get_indexes('check_in')}
    assert 'ix_game_park_status_time' in {i['name'] for i in inspector.get_indexes('game')}
    assert {c['name'] for c in inspector.get_columns('park')} == park_columns
