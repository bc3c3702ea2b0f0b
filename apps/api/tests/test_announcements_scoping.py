from datetime import datetime, timedelta, timezone

from apps.api.app import create_app
from apps.api.config import Config
from apps.api import db
from apps.api.models.municipality import Municipality, Barangay
from apps.api.models.user import User
from apps.api.models.announcement import Announcement
from flask_jwt_extended import create_access_token


class ScopedTestConfig(Config):
  SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
  SQLALCHEMY_ENGINE_OPTIONS = {}
  TESTING = True
  JWT_SECRET_KEY = 'test-secret'
  RATELIMIT_ENABLED = False


def build_app_with_announcements():
  app = create_app(ScopedTestConfig)
  with app.app_context():
    db.create_all()
    muni = Municipality(id=112, name='Iba', code='IBA')
    other_muni = Municipality(id=109, name='Cabangan', code='CAB')
    brgy = Barangay(id=5001, name='Barangay 1', municipality_id=muni.id)
    other_brgy = Barangay(id=5002, name='Barangay 2', municipality_id=other_muni.id)
    resident = User(email='res@example.com', password_hash='test', role='resident',
                    municipality_id=muni.id, barangay_id=brgy.id)
    responder = User(email='brgy@example.com', password_hash='test', role='barangay_responder',
                     municipality_id=muni.id, barangay_id=brgy.id)
    municipal = User(email='muni@example.com', password_hash='test', role='municipal_responder',
                     municipality_id=muni.id)
    db.session.add_all([muni, other_muni])
    db.session.flush()
    db.session.add_all([brgy, other_brgy, resident, responder, municipal])
    db.session.flush()

    ann_all = Announcement(title='Typhoon signal no. 2', body='Everyone', scope='all', author_id=municipal.id)
    ann_brgy = Announcement(title='Barangay Update', body='Barangay specific', scope='barangay',
                            barangay_id=brgy.id, author_id=responder.id)
    ann_other_brgy = Announcement(title='Other Barangay', body='Not yours', scope='barangay',
                                  barangay_id=other_brgy.id, author_id=responder.id)
    db.session.add_all([ann_all, ann_brgy, ann_other_brgy])
    db.session.commit()
    return app, {
      'resident': resident.id,
      'responder': responder.id,
      'municipal': municipal.id,
      'all': ann_all.id,
      'barangay': ann_brgy.id,
      'other_barangay': ann_other_brgy.id,
      'barangay_id': brgy.id,
      'other_barangay_id': other_brgy.id,
    }


def _token(app, user_id, role):
  with app.app_context():
    return create_access_token(identity=str(user_id), additional_claims={'role': role})


def test_resident_sees_global_and_own_barangay():
  app, ids = build_app_with_announcements()
  client = app.test_client()
  token = _token(app, ids['resident'], 'resident')
  resp = client.get('/api/announcements', headers={'Authorization': f'Bearer {token}'})
  assert resp.status_code == 200
  returned_ids = {a['id'] for a in resp.get_json().get('announcements', [])}
  assert returned_ids == {ids['all'], ids['barangay']}


def test_other_barangay_detail_is_not_found():
  app, ids = build_app_with_announcements()
  client = app.test_client()
  token = _token(app, ids['resident'], 'resident')
  resp = client.get(f"/api/announcements/{ids['other_barangay']}", headers={'Authorization': f'Bearer {token}'})
  assert resp.status_code == 404


def test_guest_only_sees_global_announcements():
  app, ids = build_app_with_announcements()
  client = app.test_client()
  resp = client.get('/api/announcements')
  assert resp.status_code == 200
  returned_ids = [a['id'] for a in resp.get_json().get('announcements', [])]
  assert returned_ids == [ids['all']]


def test_barangay_responder_posts_to_own_barangay_by_default():
  app, ids = build_app_with_announcements()
  client = app.test_client()
  token = _token(app, ids['responder'], 'barangay_responder')
  resp = client.post('/api/announcements', json={'title': 'Clean-up drive'},
                     headers={'Authorization': f'Bearer {token}'})
  assert resp.status_code == 201
  body = resp.get_json()['announcement']
  assert body['scope'] == 'barangay'
  assert body['barangay_id'] == ids['barangay_id']

  elsewhere = client.post('/api/announcements',
                          json={'title': 'Not mine', 'barangay_id': ids['other_barangay_id']},
                          headers={'Authorization': f'Bearer {token}'})
  assert elsewhere.status_code == 403
  global_post = client.post('/api/announcements', json={'title': 'Everyone', 'scope': 'all'},
                            headers={'Authorization': f'Bearer {token}'})
  assert global_post.status_code == 403


def test_municipal_responder_posts_globally_and_resident_cannot_post():
  app, ids = build_app_with_announcements()
  client = app.test_client()
  muni_token = _token(app, ids['municipal'], 'municipal_responder')
  resp = client.post('/api/announcements', json={'title': 'Evacuation centers open'},
                     headers={'Authorization': f'Bearer {muni_token}'})
  assert resp.status_code == 201
  assert resp.get_json()['announcement']['scope'] == 'all'

  res_token = _token(app, ids['resident'], 'resident')
  denied = client.post('/api/announcements', json={'title': 'Hello'}, headers={'Authorization': f'Bearer {res_token}'})
  assert denied.status_code == 403
  with app.app_context():
    assert Announcement.query.count() == 4


def test_global_announcement_listed_behind_many_barangay_posts():
  app, ids = build_app_with_announcements()
  client = app.test_client()
  with app.app_context():
    later = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(days=1)
    db.session.add_all([
      Announcement(title=f'Sitio notice {n}', scope='barangay', barangay_id=ids['other_barangay_id'],
                   author_id=ids['responder'], created_at=later + timedelta(minutes=n))
      for n in range(250)
    ])
    db.session.commit()

  body = client.get('/api/announcements').get_json()
  assert [a['id'] for a in body['announcements']] == [ids['all']]

  token = _token(app, ids['resident'], 'resident')
  mine = client.get('/api/announcements?limit=5', headers={'Authorization': f'Bearer {token}'}).get_json()
  assert sorted(a['id'] for a in mine['announcements']) == sorted([ids['all'], ids['barangay']])


def test_announcement_for_unknown_barangay_is_invalid():
  app, ids = build_app_with_announcements()
  client = app.test_client()
  with app.app_context():
    admin = User(email='admin@example.com', password_hash='test', role='admin')
    db.session.add(admin)
    db.session.commit()
    admin_id = admin.id

  resp = client.post('/api/announcements', json={'title': 'Road closure', 'scope': 'barangay', 'barangay_id': 999999},
                     headers={'Authorization': f'Bearer {_token(app, admin_id, "admin")}'})
  assert resp.status_code == 400
  assert resp.get_json()['field'] == 'barangay_id'
