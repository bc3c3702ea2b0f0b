from apps.api.utils.geography import StaticGeographyDirectory
from apps.api.utils.identity import Actor, canonical_scope, normalize_role


def test_normalize_role_accepts_aliases_and_rejects_unknown():
  assert normalize_role(' Barangay_Responder ') == 'barangay_responder'
  assert normalize_role('superadmin') == 'super_admin'
  assert normalize_role('legacy_lgu_responder') == 'lgu_responder'
  assert normalize_role('mayor') is None
  assert normalize_role(None) is None


def test_every_role_maps_to_one_scope():
  assert canonical_scope('resident') == 'none'
  assert canonical_scope('barangay_responder') == 'barangay'
  assert canonical_scope('lgu_responder') == 'barangay'
  assert canonical_scope('municipal_responder') == 'municipality'
  assert canonical_scope('admin') == 'global'
  assert canonical_scope('super_admin') == 'global'
  assert canonical_scope('unknown') == 'none'


def test_actor_keeps_only_fields_of_its_scope():
  municipal = Actor.from_values(1, 'municipal_responder', barangay_id=10, municipality_id=2)
  assert municipal.barangay_id is None and municipal.municipality_id == 2
  assert municipal.is_affiliated

  admin = Actor.from_values(2, 'admin', barangay_id=10, municipality_id=2)
  assert admin.barangay_id is None and admin.municipality_id is None
  assert admin.is_admin and not admin.is_affiliated

  unaffiliated = Actor.from_values(3, 'barangay_responder', barangay_id=None, municipality_id=2)
  assert unaffiliated.municipality_id is None
  assert not unaffiliated.is_affiliated
  assert unaffiliated.is_lgu


def test_anonymous_actor():
  actor = Actor.anonymous()
  assert not actor.is_authenticated
  assert actor.scope == 'none'


def test_static_directory_containment():
  directory = StaticGeographyDirectory({1: [10, 11], 2: [20]})
  assert directory.municipality_of(10) == 1
  assert directory.municipality_contains(1, 11)
  assert directory.municipality_contains('2', '20')
  assert not directory.municipality_contains(1, 20)
  assert not directory.municipality_contains(None, 10)
  assert directory.municipality_of(999) is None
  assert directory.list_barangays(1) == [10, 11]
