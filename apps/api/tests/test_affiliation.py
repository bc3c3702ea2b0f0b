import pytest
from sqlalchemy.exc import IntegrityError

from apps.api.app import create_app
from apps.api.config import Config
from apps.api import db
from apps.api.models.municipality import Municipality, Barangay
from apps.api.models.user import User
from apps.api.models.membership import BarangayMembership
from apps.api.models.change_request import BarangayChangeRequest
from apps.api.utils.time import utc_now
from flask_jwt_extended import create_access_token


class AffiliationTestConfig(Config):
  SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
  SQLALCHEMY_ENGINE_OPTIONS = {}
  TESTING = True
  JWT_SECRET_KEY = 'test-secret'
  RATELIMIT_ENABLED = False


POLYGON = {'type': 'Polygon', 'coordinates': [[[120.0, 15.0], [120.1, 15.0], [120.1, 15.1], [120.0, 15.0]]]}


def build_app():
  app = create_app(AffiliationTestConfig)
  with app.app_context():
    db.create_all()
    iba = Municipality(id=1, name='Iba', code='IBA')
    db.session.add(iba)
    db.session.flush()

    now = utc_now()
    poblacion = Barangay(id=10, municipality_id=iba.id, name='Poblacion', boundary_geojson=POLYGON, boundary_approved_at=now)
    zone = Barangay(id=11, municipality_id=iba.id, name='Zone 1', boundary_geojson=POLYGON, boundary_approved_at=now)
    unbounded = Barangay(id=12, municipality_id=iba.id, name='Bangantalinga')
    creator = User(email='creator@example.com', password_hash='test', role='barangay_responder',
                   barangay_id=10, municipality_id=iba.id)
    joiner = User(email='joiner@example.com', password_hash='test', role='barangay_responder')
    municipal = User(email='muni@example.com', password_hash='test', role='municipal_responder', municipality_id=iba.id)
    db.session.add_all([poblacion, zone, unbounded, creator, joiner, municipal])
    db.session.flush()
    poblacion.creator_id = creator.id
    db.session.add(BarangayMembership(user_id=creator.id, barangay_id=10, is_creator=True))
    db.session.commit()
    ids = {'creator': creator.id, 'joiner': joiner.id, 'municipal': municipal.id}
  return app, ids


def _headers(app, user_id, role='barangay_responder'):
  with app.app_context():
    token = create_access_token(identity=str(user_id), additional_claims={'role': role})
  return {'Authorization': f'Bearer {token}'}


def test_join_bounded_barangay_sets_affiliation():
  app, ids = build_app()
  client = app.test_client()
  resp = client.post('/api/barangay-boundaries/join', json={'barangay_id': 11}, headers=_headers(app, ids['joiner']))
  assert resp.status_code == 201, resp.get_json()
  assert resp.get_json()['membership']['is_creator'] is False

  me = client.get('/api/auth/me', headers=_headers(app, ids['joiner'])).get_json()
  assert me['user']['barangay_id'] == 11
  assert me['user']['municipality_id'] == 1
  assert me['membership']['barangay_id'] == 11


def test_join_unbounded_barangay_conflicts():
  app, ids = build_app()
  client = app.test_client()
  resp = client.post('/api/barangay-boundaries/join', json={'barangay_id': 12}, headers=_headers(app, ids['joiner']))
  assert resp.status_code == 409
  assert resp.get_json()['code'] == 'BARANGAY_NOT_BOUNDED'


def test_join_unknown_barangay_is_not_found():
  app, ids = build_app()
  client = app.test_client()
  resp = client.post('/api/barangay-boundaries/join', json={'barangay_id': 999}, headers=_headers(app, ids['joiner']))
  assert resp.status_code == 404


def test_second_join_conflicts_without_second_membership():
  app, ids = build_app()
  client = app.test_client()
  resp = client.post('/api/barangay-boundaries/join', json={'barangay_id': 11}, headers=_headers(app, ids['creator']))
  assert resp.status_code == 409
  assert resp.get_json()['code'] == 'ALREADY_AFFILIATED'
  with app.app_context():
    open_rows = BarangayMembership.query.filter_by(user_id=ids['creator'], left_at=None).all()
    assert len(open_rows) == 1
    assert open_rows[0].barangay_id == 10


def test_municipal_responder_cannot_join():
  app, ids = build_app()
  client = app.test_client()
  resp = client.post(
    '/api/barangay-boundaries/join',
    json={'barangay_id': 11},
    headers=_headers(app, ids['municipal'], 'municipal_responder'),
  )
  assert resp.status_code == 403


def test_leave_then_join_again():
  app, ids = build_app()
  client = app.test_client()
  headers = _headers(app, ids['creator'])
  left = client.post('/api/barangay-boundaries/leave', json={'reason': 'reassigned'}, headers=headers)
  assert left.status_code == 200
  assert left.get_json()['membership']['left_at'] is not None

  with app.app_context():
    user = db.session.get(User, ids['creator'])
    assert user.barangay_id is None
    assert user.municipality_id is None

  again = client.post('/api/barangay-boundaries/leave', headers=headers)
  assert again.status_code == 409
  assert again.get_json()['code'] == 'NOT_AFFILIATED'

  joined = client.post('/api/barangay-boundaries/join', json={'barangay_id': 11}, headers=headers)
  assert joined.status_code == 201
  history = client.get('/api/barangay-boundaries/membership', headers=headers).get_json()
  assert history['current']['barangay_id'] == 11
  assert len(history['history']) == 2


def test_transfer_moves_membership_atomically():
  app, ids = build_app()
  client = app.test_client()
  resp = client.post(
    '/api/barangay-boundaries/transfer',
    json={'barangay_id': 11, 'reason': 'moved'},
    headers=_headers(app, ids['creator']),
  )
  assert resp.status_code == 200, resp.get_json()
  with app.app_context():
    rows = BarangayMembership.query.filter_by(user_id=ids['creator']).order_by(BarangayMembership.id).all()
    assert [r.barangay_id for r in rows] == [10, 11]
    assert rows[0].left_at is not None and rows[0].leave_reason == 'moved'
    assert rows[1].left_at is None and rows[1].is_creator is False
    assert db.session.get(User, ids['creator']).barangay_id == 11


def test_transfer_to_current_barangay_is_invalid():
  app, ids = build_app()
  client = app.test_client()
  resp = client.post('/api/barangay-boundaries/transfer', json={'barangay_id': 10}, headers=_headers(app, ids['creator']))
  assert resp.status_code == 400


def test_transfer_without_membership_conflicts():
  app, ids = build_app()
  client = app.test_client()
  resp = client.post('/api/barangay-boundaries/transfer', json={'barangay_id': 11}, headers=_headers(app, ids['joiner']))
  assert resp.status_code == 409


def test_delete_request_only_from_creator():
  app, ids = build_app()
  client = app.test_client()
  client.post('/api/barangay-boundaries/join', json={'barangay_id': 11}, headers=_headers(app, ids['joiner']))

  denied = client.post(
    '/api/barangay-boundaries/delete-requests',
    json={'barangay_id': 11, 'reason': 'duplicate'},
    headers=_headers(app, ids['joiner']),
  )
  assert denied.status_code == 403

  creator = _headers(app, ids['creator'])
  ok = client.post('/api/barangay-boundaries/delete-requests', json={'barangay_id': 10, 'reason': 'merged'}, headers=creator)
  assert ok.status_code == 201
  dup = client.post('/api/barangay-boundaries/delete-requests', json={'barangay_id': 10}, headers=creator)
  assert dup.status_code == 409
  assert dup.get_json()['code'] == 'DELETE_PENDING'

  with app.app_context():
    assert BarangayChangeRequest.query.count() == 1
    # the barangay itself stays until an admin acts
    assert db.session.get(Barangay, 10) is not None


def test_unique_open_membership_enforced_by_store():
  app, ids = build_app()
  with app.app_context():
    db.session.add(BarangayMembership(user_id=ids['creator'], barangay_id=11, is_creator=False))
    with pytest.raises(IntegrityError):
      db.session.flush()
    db.session.rollback()


def test_approval_without_geometry_rejected_by_store():
  app, ids = build_app()
  with app.app_context():
    barangay = db.session.get(Barangay, 12)
    barangay.boundary_approved_at = utc_now()
    with pytest.raises(IntegrityError):
      db.session.flush()
    db.session.rollback()

    with pytest.raises(ValueError):
      db.session.get(Barangay, 12).approve_boundary(None)
