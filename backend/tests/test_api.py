import pytest
import requests
from sqlalchemy.exc import OperationalError

from checkers import identity
from checkers.identity import IdentityError, fetch_profile
from checkers.services.match import results
from checkers.services.match.results import (
    get_record, persist_outcome, record_match_result, update_record,
)
from checkers.services.match.rules import Color
from checkers.services.match.sessions import MatchOutcome, Role


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body
        self.text = '' if body is None else str(body)

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._body is None:
            raise ValueError('no json')
        return self._body


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'message' in res.get_json()


def test_token_requires_code(client):
    res = client.post('/api/token', json={})
    assert res.status_code == 400
    assert res.get_json() == {'error': 'Missing code'}


def test_token_exchange(client, monkeypatch):
    calls = []

    def fake_post(url, data=None, headers=None, timeout=None):
        calls.append((url, data))
        return FakeResponse(200, {'access_token': 'tok-123'})

    monkeypatch.setattr(identity.requests, 'post', fake_post)
    res = client.post('/api/token', json={'code': 'abc'})
    assert res.status_code == 200
    assert res.get_json() == {'access_token': 'tok-123'}
    url, data = calls[0]
    assert url == 'https://identity.test/api/oauth2/token'
    assert data['grant_type'] == 'authorization_code'
    assert data['code'] == 'abc'
    assert data['client_id'] == 'client-id'


def test_token_exchange_passes_provider_rejection_through(client, monkeypatch):
    monkeypatch.setattr(identity.requests, 'post',
                        lambda *a, **kw: FakeResponse(400, {'error': 'invalid_grant'}))
    res = client.post('/api/token', json={'code': 'stale'})
    assert res.status_code == 400
    assert res.get_json() == {'error': 'invalid_grant'}


def test_token_exchange_without_token_is_bad_gateway(client, monkeypatch):
    monkeypatch.setattr(identity.requests, 'post', lambda *a, **kw: FakeResponse(200, {}))
    res = client.post('/api/token', json={'code': 'abc'})
    assert res.status_code == 502


def test_token_exchange_transport_failure(client, monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError('down')

    monkeypatch.setattr(identity.requests, 'post', boom)
    res = client.post('/api/token', json={'code': 'abc'})
    assert res.status_code == 500


def test_fetch_profile(flask_app, monkeypatch):
    seen = {}

    def fake_get(url, headers=None, timeout=None):
        seen['url'], seen['headers'] = url, headers
        return FakeResponse(200, {'id': '99', 'username': 'dee', 'global_name': None, 'avatar': 'hash'})

    monkeypatch.setattr(identity.requests, 'get', fake_get)
    profile = fetch_profile(flask_app.config, 'tok')
    assert profile.identity == '99'
    assert profile.display_name == 'dee'
    assert profile.avatar == 'hash'
    assert seen['url'].endswith('/users/@me')
    assert seen['headers'] == {'Authorization': 'Bearer tok'}


def test_fetch_profile_rejected(flask_app, monkeypatch):
    monkeypatch.setattr(identity.requests, 'get', lambda *a, **kw: FakeResponse(401, {'message': '401: Unauthorized'}))
    with pytest.raises(IdentityError) as excinfo:
        fetch_profile(flask_app.config, 'expired')
    assert excinfo.value.status_code == 401


def test_records(client):
    assert client.get('/api/records/alice').get_json() == {'wins': 0, 'matches': 0}
    assert update_record('alice', 1, 1) == {'wins': 1, 'matches': 1}
    assert client.get('/api/records/alice').get_json() == {'wins': 1, 'matches': 1}


def test_record_match_result_counts_seated_players(flask_app):
    outcome = MatchOutcome(winner=Color.BLACK, seats={Role.RED: 'alice', Role.BLACK: 'bob'})
    updated = record_match_result(outcome)
    assert updated == {
        'alice': {'wins': 0, 'matches': 1},
        'bob': {'wins': 1, 'matches': 1},
    }
    assert record_match_result(None) == {}
    assert get_record('bob') == {'wins': 1, 'matches': 1}


def test_persist_outcome_rolls_back_a_failed_write(flask_app, monkeypatch):
    outcome = MatchOutcome(winner=Color.RED, seats={Role.RED: 'alice', Role.BLACK: 'bob'})
    assert persist_outcome(flask_app, 'room-1', outcome) is True
    assert persist_outcome(flask_app, 'room-1', None) is False

    def failing_update_record(identity, wins_delta=0, matches_delta=0):
        raise OperationalError('UPDATE user_record', {}, Exception('database is locked'))

    monkeypatch.setattr(results, 'update_record', failing_update_record)
    assert persist_outcome(flask_app, 'room-1', outcome) is False
    assert get_record('alice') == {'wins': 1, 'matches': 1}
