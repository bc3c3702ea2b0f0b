from apps.api.app import create_app
from apps.api.config import Config
from apps.api import db
from apps.api.models.municipality import Municipality, Barangay
from apps.api.models.user import User
from apps.api.models.marker import MarkerType, OfficialMarker
from apps.api.models.resource import Resource, ResourceType, ResourceRequest
from flask_jwt_extended import create_access_token


class FieldOpsTestConfig(Config):
  SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
  SQLALCHEMY_ENGINE_OPTIONS = {}
  TESTING = True
  JWT_SECRET_KEY = 'test-secret'
  RATELIMIT_ENABLED = False


ROLES = {
  'resp_a': 'barangay_responder',
  'resp_b': 'barangay_responder',
  'municipal': 'municipal_responder',
  'far_municipal': 'municipal_responder',
  'resident': 'resident',
  'admin': 'admin',
}


def build_app():
  app = create_app(FieldOpsTestConfig)
  with app.app_context():
    db.create_all()
    db.session.add_all([Municipality(id=1, name='Iba', code='IBA'), Municipality(id=2, name='Cabangan', code='CAB')])
    db.session.flush()
    db.session.add_all([
      Barangay(id=10, municipality_id=1, name='Poblacion'),
      Barangay(id=11, municipality_id=1, name='Zone 1'),
      Barangay(id=20, municipality_id=2, name='Anonang'),
      MarkerType(id=1, name='Evacuation Center', slug='evacuation-center', sort_order=1),
      ResourceType(id=1, name='Food Packs', slug='food-packs', unit='packs'),
    ])
    users = {
      'resp_a': User(email='a@example.com', password_hash='test', role='barangay_responder', barangay_id=10, municipality_id=1),
      'resp_b': User(email='b@example.com', password_hash='test', role='barangay_responder', barangay_id=11, municipality_id=1),
      'municipal': User(email='m@example.com', password_hash='test', role='municipal_responder', municipality_id=1),
      'far_municipal': User(email='fm@example.com', password_hash='test', role='municipal_responder', municipality_id=2),
      'resident': User(email='res@example.com', password_hash='test', role='resident', barangay_id=10, municipality_id=1),
      'admin': User(email='admin@example.com', password_hash='test', role='admin'),
    }
    db.session.add_all(users.values())
    db.session.commit()
    ids = {key: u.id for key, u in users.items()}
  return app, ids


def _headers(app, ids, who):
  with app.app_context():
    token = create_access_token(identity=str(ids[who]), additional_claims={'role': ROLES[who]})
  return {'Authorization': f'Bearer {token}'}


def _seed_markers(app, ids):
  with app.app_context():
    active = OfficialMarker(barangay_id=10, marker_type_id=1, lat=15.33, lng=119.98,
                            title='Poblacion Gym', is_active=True, created_by=ids['resp_a'])
    closed = OfficialMarker(barangay_id=10, marker_type_id=1, lat=15.34, lng=119.97,
                            title='Old School Annex', is_active=False, created_by=ids['resp_a'])
    db.session.add_all([active, closed])
    db.session.commit()
    return active.id, closed.id


def _titles(resp):
  return sorted(m['title'] for m in resp.get_json()['markers'])


def test_inactive_marker_only_visible_to_scoped_responders_and_admins():
  app, ids = build_app()
  client = app.test_client()
  _seed_markers(app, ids)

  assert _titles(client.get('/api/markers')) == ['Poblacion Gym']
  for who in ('resident', 'resp_b', 'far_municipal'):
    assert _titles(client.get('/api/markers', headers=_headers(app, ids, who))) == ['Poblacion Gym']
  for who in ('resp_a', 'municipal', 'admin'):
    assert _titles(client.get('/api/markers', headers=_headers(app, ids, who))) == ['Old School Annex', 'Poblacion Gym']


def test_responder_cannot_place_or_edit_markers_outside_their_barangay():
  app, ids = build_app()
  client = app.test_client()
  active_id, closed_id = _seed_markers(app, ids)
  marker = {'marker_type_id': 1, 'lat': 15.3, 'lng': 119.9, 'title': 'Relief hub'}

  outside = client.post('/api/markers', json={**marker, 'barangay_id': 11}, headers=_headers(app, ids, 'resp_a'))
  assert outside.status_code == 403
  inside = client.post('/api/markers', json={**marker, 'barangay_id': 10}, headers=_headers(app, ids, 'resp_a'))
  assert inside.status_code == 201

  visible = client.patch(f'/api/markers/{active_id}', json={'title': 'Renamed'}, headers=_headers(app, ids, 'resp_b'))
  assert visible.status_code == 403
  hidden = client.patch(f'/api/markers/{closed_id}', json={'is_active': True}, headers=_headers(app, ids, 'resp_b'))
  assert hidden.status_code == 404

  own = client.patch(f'/api/markers/{closed_id}', json={'is_active': True}, headers=_headers(app, ids, 'resp_a'))
  assert own.status_code == 200
  assert own.get_json()['marker']['is_active'] is True


def test_marker_for_unknown_barangay_is_invalid():
  app, ids = build_app()
  client = app.test_client()
  resp = client.post('/api/markers',
                     json={'barangay_id': 999, 'marker_type_id': 1, 'lat': 15.3, 'lng': 119.9, 'title': 'Nowhere'},
                     headers=_headers(app, ids, 'admin'))
  assert resp.status_code == 400
  assert resp.get_json()['field'] == 'barangay_id'

  flag = client.post('/api/markers',
                     json={'barangay_id': True, 'marker_type_id': 1, 'lat': 15.3, 'lng': 119.9, 'title': 'Nowhere'},
                     headers=_headers(app, ids, 'admin'))
  assert flag.status_code == 400


def test_global_stock_visible_to_lgu_while_barangay_stock_stays_scoped():
  app, ids = build_app()
  client = app.test_client()
  with app.app_context():
    db.session.add_all([
      Resource(resource_type_id=1, name='Provincial warehouse', quantity=500),
      Resource(resource_type_id=1, name='Zone 1 hall', quantity=40, barangay_id=11),
    ])
    db.session.commit()

  def names(who):
    resp = client.get('/api/resources', headers=_headers(app, ids, who))
    assert resp.status_code == 200
    return sorted(r['name'] for r in resp.get_json()['resources'])

  assert names('resp_a') == ['Provincial warehouse']
  assert names('far_municipal') == ['Provincial warehouse']
  assert names('resp_b') == ['Provincial warehouse', 'Zone 1 hall']
  assert names('municipal') == ['Provincial warehouse', 'Zone 1 hall']
  assert names('admin') == ['Provincial warehouse', 'Zone 1 hall']
  assert names('resident') == []


def test_resource_stock_for_unknown_barangay_is_invalid():
  app, ids = build_app()
  client = app.test_client()
  resp = client.post('/api/resources', json={'resource_type_id': 1, 'name': 'Ghost depot', 'barangay_id': 404},
                     headers=_headers(app, ids, 'admin'))
  assert resp.status_code == 400
  assert resp.get_json()['field'] == 'barangay_id'


def test_resource_request_insert_is_scoped_and_review_is_admin_only():
  app, ids = build_app()
  client = app.test_client()
  payload = {'resource_type_id': 1, 'quantity': 50, 'notes': 'Evacuees at the gym'}

  created = client.post('/api/resources/requests', json={**payload, 'barangay_id': 10}, headers=_headers(app, ids, 'resp_a'))
  assert created.status_code == 201
  request_id = created.get_json()['request']['id']

  assert client.post('/api/resources/requests', json={**payload, 'barangay_id': 11},
                     headers=_headers(app, ids, 'resp_a')).status_code == 403
  assert client.post('/api/resources/requests', json={**payload, 'barangay_id': 10},
                     headers=_headers(app, ids, 'resident')).status_code == 403
  assert client.post('/api/resources/requests', json={**payload, 'barangay_id': 77},
                     headers=_headers(app, ids, 'resp_a')).status_code == 400

  assert client.patch(f'/api/resources/requests/{request_id}', json={'status': 'approved'},
                      headers=_headers(app, ids, 'resp_a')).status_code == 403
  assert client.patch(f'/api/resources/requests/{request_id}', json={'status': 'approved'},
                      headers=_headers(app, ids, 'municipal')).status_code == 403
  approved = client.patch(f'/api/resources/requests/{request_id}', json={'status': 'approved'},
                          headers=_headers(app, ids, 'admin'))
  assert approved.status_code == 200
  assert approved.get_json()['request']['status'] == 'approved'

  listed = client.get('/api/resources/requests', headers=_headers(app, ids, 'resp_b')).get_json()
  assert listed['count'] == 0


def test_allocations_follow_the_request_scope():
  app, ids = build_app()
  client = app.test_client()
  with app.app_context():
    stock = Resource(resource_type_id=1, name='Provincial warehouse', quantity=100)
    req = ResourceRequest(barangay_id=10, requested_by=ids['resp_a'], resource_type_id=1,
                          quantity_requested=30, status='approved')
    db.session.add_all([stock, req])
    db.session.commit()
    stock_id, request_id = stock.id, req.id

  assert client.post(f'/api/resources/requests/{request_id}/allocations', json={'resource_id': stock_id, 'quantity': 10},
                     headers=_headers(app, ids, 'resp_a')).status_code == 403
  allocated = client.post(f'/api/resources/requests/{request_id}/allocations',
                          json={'resource_id': stock_id, 'quantity': 10}, headers=_headers(app, ids, 'admin'))
  assert allocated.status_code == 201
  assert allocated.get_json()['request']['status'] == 'partially_fulfilled'

  url = f'/api/resources/requests/{request_id}/allocations'
  for who in ('resp_a', 'municipal', 'admin'):
    resp = client.get(url, headers=_headers(app, ids, who))
    assert resp.status_code == 200
    assert len(resp.get_json()['allocations']) == 1
  for who in ('resp_b', 'far_municipal', 'resident'):
    assert client.get(url, headers=_headers(app, ids, who)).status_code == 404

  with app.app_context():
    assert float(db.session.get(Resource, stock_id).quantity) == 90
