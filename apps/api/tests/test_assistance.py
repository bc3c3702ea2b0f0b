from apps.api.app import create_app
from apps.api.config import Config
from apps.api import db
from apps.api.models.municipality import Municipality, Barangay
from apps.api.models.user import User
from apps.api.models.assistance import AssistanceOffer
from apps.api.models.barangay_status import BarangayStatusUpdate
from apps.api.models.notification import Notification
from apps.api.utils.time import utc_now
from flask_jwt_extended import create_access_token


class AssistanceTestConfig(Config):
  SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
  SQLALCHEMY_ENGINE_OPTIONS = {}
  TESTING = True
  JWT_SECRET_KEY = 'test-secret'
  RATELIMIT_ENABLED = False


POLYGON = {'type': 'Polygon', 'coordinates': [[[120.0, 15.0], [120.1, 15.0], [120.1, 15.1], [120.0, 15.0]]]}


def build_app(recipient_status='in_need_of_resources'):
  app = create_app(AssistanceTestConfig)
  with app.app_context():
    db.create_all()
    db.session.add_all([Municipality(id=1, name='Iba', code='IBA'), Municipality(id=2, name='Cabangan', code='CAB')])
    db.session.flush()
    now = utc_now()
    db.session.add_all([
      Barangay(id=10, municipality_id=1, name='Poblacion', boundary_geojson=POLYGON, boundary_approved_at=now),
      Barangay(id=11, municipality_id=1, name='Zone 1', boundary_geojson=POLYGON, boundary_approved_at=now),
      Barangay(id=20, municipality_id=2, name='Anonang', boundary_geojson=POLYGON, boundary_approved_at=now),
    ])
    users = {
      # helper barangay responder in Cabangan
      'helper': User(email='helper@example.com', password_hash='test', role='barangay_responder', barangay_id=20, municipality_id=2),
      'helper_peer': User(email='peer@example.com', password_hash='test', role='barangay_responder', barangay_id=20, municipality_id=2),
      'recipient_responder': User(email='rr@example.com', password_hash='test', role='barangay_responder', barangay_id=10, municipality_id=1),
      'iba_municipal': User(email='im@example.com', password_hash='test', role='municipal_responder', municipality_id=1),
      'cab_municipal': User(email='cm@example.com', password_hash='test', role='municipal_responder', municipality_id=2),
      'other_responder': User(email='or@example.com', password_hash='test', role='barangay_responder', barangay_id=11, municipality_id=1),
      'resident': User(email='res@example.com', password_hash='test', role='resident', barangay_id=10, municipality_id=1),
      'admin': User(email='admin@example.com', password_hash='test', role='admin'),
    }
    db.session.add_all(users.values())
    db.session.flush()
    if recipient_status:
      db.session.add(BarangayStatusUpdate(barangay_id=10, updated_by=users['recipient_responder'].id,
                                          status=recipient_status, description='Evacuees need food packs'))
    db.session.commit()
    ids = {key: u.id for key, u in users.items()}
  return app, ids


def _headers(app, user_id, role):
  with app.app_context():
    token = create_access_token(identity=str(user_id), additional_claims={'role': role})
  return {'Authorization': f'Bearer {token}'}


def _offer(app, client, user_id, role, barangay_id=10, **extra):
  body = {'description': '50 food packs and water'}
  body.update(extra)
  return client.post(f'/api/barangay-status/{barangay_id}/assistance', json=body, headers=_headers(app, user_id, role))


def test_offer_to_barangay_in_need_notifies_its_responders():
  app, ids = build_app()
  client = app.test_client()
  resp = _offer(app, client, ids['helper'], 'barangay_responder',
                expected_arrival_at='2026-10-20T08:00:00Z')
  assert resp.status_code == 201, resp.get_json()
  offer = resp.get_json()['offer']
  assert offer['helping_barangay_id'] == 20
  assert offer['helping_municipality_id'] is None
  assert offer['recipient_barangay_id'] == 10

  with app.app_context():
    notified = {n.user_id for n in Notification.query.filter_by(event_type='assistance_offered').all()}
  assert notified == {ids['recipient_responder'], ids['iba_municipal']}


def test_offer_rejected_when_recipient_not_in_need():
  app, ids = build_app(recipient_status=None)
  client = app.test_client()
  resp = _offer(app, client, ids['helper'], 'barangay_responder')
  assert resp.status_code == 409
  assert resp.get_json()['code'] == 'RECIPIENT_NOT_IN_NEED'
  with app.app_context():
    assert AssistanceOffer.query.count() == 0


def test_barangay_cannot_assist_itself():
  app, ids = build_app()
  client = app.test_client()
  resp = _offer(app, client, ids['recipient_responder'], 'barangay_responder')
  assert resp.status_code == 400


def test_short_description_and_bad_arrival_are_invalid():
  app, ids = build_app()
  client = app.test_client()
  assert _offer(app, client, ids['helper'], 'barangay_responder', description='ok').status_code == 400
  assert _offer(app, client, ids['helper'], 'barangay_responder', expected_arrival_at='next week').status_code == 400


def test_resident_cannot_offer():
  app, ids = build_app()
  client = app.test_client()
  assert _offer(app, client, ids['resident'], 'resident').status_code == 403


def test_municipal_responder_offers_from_municipality():
  app, ids = build_app()
  client = app.test_client()
  resp = _offer(app, client, ids['cab_municipal'], 'municipal_responder')
  assert resp.status_code == 201
  assert resp.get_json()['offer']['helping_municipality_id'] == 2


def test_admin_must_name_one_helper():
  app, ids = build_app()
  client = app.test_client()
  assert _offer(app, client, ids['admin'], 'admin').status_code == 400
  assert _offer(app, client, ids['admin'], 'admin', helping_barangay_id=20, helping_municipality_id=2).status_code == 400
  ok = _offer(app, client, ids['admin'], 'admin', helping_municipality_id=2)
  assert ok.status_code == 201


def test_delivery_marked_once_by_helping_party():
  app, ids = build_app()
  client = app.test_client()
  offer_id = _offer(app, client, ids['helper'], 'barangay_responder').get_json()['offer']['id']

  outsider = client.post(f'/api/barangay-status/assistance/{offer_id}/delivered',
                         headers=_headers(app, ids['other_responder'], 'barangay_responder'))
  assert outsider.status_code == 403

  # any responder of the helping barangay may confirm
  first = client.post(f'/api/barangay-status/assistance/{offer_id}/delivered',
                      headers=_headers(app, ids['helper_peer'], 'barangay_responder'))
  assert first.status_code == 200
  assert first.get_json()['offer']['delivered_at'] is not None

  second = client.post(f'/api/barangay-status/assistance/{offer_id}/delivered',
                       headers=_headers(app, ids['helper'], 'barangay_responder'))
  assert second.status_code == 409
  assert second.get_json()['code'] == 'ALREADY_DELIVERED'


def test_offers_listed_publicly_and_filtered_by_pending():
  app, ids = build_app()
  client = app.test_client()
  offer_id = _offer(app, client, ids['helper'], 'barangay_responder').get_json()['offer']['id']
  _offer(app, client, ids['cab_municipal'], 'municipal_responder')
  client.post(f'/api/barangay-status/assistance/{offer_id}/delivered',
              headers=_headers(app, ids['helper'], 'barangay_responder'))

  everything = client.get('/api/barangay-status/10/assistance').get_json()
  assert everything['count'] == 2
  pending = client.get('/api/barangay-status/10/assistance?pending=true').get_json()
  assert pending['count'] == 1
