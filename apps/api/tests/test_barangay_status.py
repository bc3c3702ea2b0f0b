from datetime import timedelta

from apps.api.app import create_app
from apps.api.config import Config
from apps.api import db
from apps.api.models.municipality import Municipality, Barangay
from apps.api.models.user import User
from apps.api.models.barangay_status import BarangayStatusUpdate
from apps.api.utils.barangay_status import normalize_status, is_need_status
from apps.api.utils.time import utc_now
from flask_jwt_extended import create_access_token


class StatusTestConfig(Config):
  SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
  SQLALCHEMY_ENGINE_OPTIONS = {}
  TESTING = True
  JWT_SECRET_KEY = 'test-secret'
  RATELIMIT_ENABLED = False


POLYGON = {'type': 'Polygon', 'coordinates': [[[120.0, 15.0], [120.1, 15.0], [120.1, 15.1], [120.0, 15.0]]]}


def build_app():
  app = create_app(StatusTestConfig)
  with app.app_context():
    db.create_all()
    iba = Municipality(id=1, name='Iba', code='IBA')
    cabangan = Municipality(id=2, name='Cabangan', code='CAB')
    db.session.add_all([iba, cabangan])
    db.session.flush()
    now = utc_now()
    db.session.add_all([
      Barangay(id=10, municipality_id=1, name='Poblacion', boundary_geojson=POLYGON, boundary_approved_at=now),
      Barangay(id=11, municipality_id=1, name='Zone 1', boundary_geojson=POLYGON, boundary_approved_at=now),
      Barangay(id=20, municipality_id=2, name='Anonang', boundary_geojson=POLYGON, boundary_approved_at=now),
      Barangay(id=21, municipality_id=2, name='Unmapped'),
    ])
    users = {
      'responder': User(email='r@example.com', password_hash='test', role='barangay_responder', barangay_id=10, municipality_id=1),
      'municipal': User(email='m@example.com', password_hash='test', role='municipal_responder', municipality_id=1),
      'resident': User(email='res@example.com', password_hash='test', role='resident', barangay_id=10, municipality_id=1),
      'admin': User(email='a@example.com', password_hash='test', role='admin'),
    }
    db.session.add_all(users.values())
    db.session.commit()
    ids = {key: u.id for key, u in users.items()}
  return app, ids


def _headers(app, user_id, role):
  with app.app_context():
    token = create_access_token(identity=str(user_id), additional_claims={'role': role})
  return {'Authorization': f'Bearer {token}'}


def test_need_status_requires_description():
  app, ids = build_app()
  client = app.test_client()
  resp = client.post(
    '/api/barangay-status/10',
    json={'status': 'in_need_of_resources', 'description': 'rice'},
    headers=_headers(app, ids['responder'], 'barangay_responder'),
  )
  assert resp.status_code == 400
  assert resp.get_json()['field'] == 'description'


def test_normal_status_drops_description_and_photos():
  app, ids = build_app()
  client = app.test_client()
  resp = client.post(
    '/api/barangay-status/10',
    json={'status': 'normal', 'description': 'all clear now', 'photo_urls': ['https://cdn.example.com/a.jpg']},
    headers=_headers(app, ids['responder'], 'barangay_responder'),
  )
  assert resp.status_code == 201
  row = resp.get_json()['status_update']
  assert row['description'] is None
  assert row['photo_urls'] == []


def test_resident_cannot_set_status():
  app, ids = build_app()
  client = app.test_client()
  resp = client.post(
    '/api/barangay-status/10',
    json={'status': 'normal'},
    headers=_headers(app, ids['resident'], 'resident'),
  )
  assert resp.status_code == 403


def test_barangay_responder_limited_to_own_barangay():
  app, ids = build_app()
  client = app.test_client()
  resp = client.post(
    '/api/barangay-status/11',
    json={'status': 'active_disaster', 'description': 'Flooding along the river'},
    headers=_headers(app, ids['responder'], 'barangay_responder'),
  )
  assert resp.status_code == 403
  with app.app_context():
    assert BarangayStatusUpdate.query.count() == 0


def test_municipal_responder_covers_every_barangay_in_municipality():
  app, ids = build_app()
  client = app.test_client()
  headers = _headers(app, ids['municipal'], 'municipal_responder')
  ok = client.post('/api/barangay-status/11', json={'status': 'active_disaster', 'description': 'Storm surge'}, headers=headers)
  assert ok.status_code == 201
  other = client.post('/api/barangay-status/20', json={'status': 'active_disaster', 'description': 'Storm surge'}, headers=headers)
  assert other.status_code == 403


def test_unknown_barangay_is_not_found_and_bad_status_is_invalid():
  app, ids = build_app()
  client = app.test_client()
  headers = _headers(app, ids['admin'], 'admin')
  assert client.post('/api/barangay-status/999', json={'status': 'normal'}, headers=headers).status_code == 404
  assert client.post('/api/barangay-status/10', json={'status': 'panic'}, headers=headers).status_code == 400


def test_latest_row_is_current_status():
  app, ids = build_app()
  client = app.test_client()
  with app.app_context():
    earlier = utc_now() - timedelta(hours=2)
    db.session.add(BarangayStatusUpdate(barangay_id=10, updated_by=ids['responder'], status='in_need_of_manpower',
                                        description='Need people for sandbags', created_at=earlier))
    db.session.commit()

  assert client.get('/api/barangay-status/10').get_json()['status'] == 'in_need_of_manpower'
  client.post('/api/barangay-status/10', json={'status': 'normal'},
              headers=_headers(app, ids['responder'], 'barangay_responder'))
  assert client.get('/api/barangay-status/10').get_json()['status'] == 'normal'

  history = client.get('/api/barangay-status/10/history').get_json()['history']
  assert [h['status'] for h in history] == ['normal', 'in_need_of_manpower']


def test_map_lists_bounded_barangays_with_default_normal():
  app, ids = build_app()
  client = app.test_client()
  with app.app_context():
    db.session.add(BarangayStatusUpdate(barangay_id=20, status='under_threat', description='legacy row'))
    db.session.commit()

  body = client.get('/api/barangay-status/map').get_json()
  statuses = {b['id']: b['status'] for b in body['barangays']}
  assert 21 not in statuses
  assert statuses[10] == 'normal'
  assert statuses[20] == 'in_need_of_resources'

  scoped = client.get('/api/barangay-status/map?municipality_id=1').get_json()
  assert {b['id'] for b in scoped['barangays']} == {10, 11}


def test_legacy_status_values_normalize():
  assert normalize_status('on_alert') == 'in_need_of_resources'
  assert normalize_status('UNDER_THREAT') == 'in_need_of_resources'
  assert normalize_status('bogus') is None
  assert is_need_status('active_disaster')
  assert not is_need_status('normal')
