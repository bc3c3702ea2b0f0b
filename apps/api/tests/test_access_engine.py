"""Access engine clauses evaluated against an in-memory geography."""
from types import SimpleNamespace

import pytest

from apps.api.utils.access import AccessContext, AccessEngine, READ, INSERT, UPDATE
from apps.api.utils.geography import StaticGeographyDirectory
from apps.api.utils.identity import Actor
from apps.api.utils.policies import (
  ASSISTANCE_OFFER,
  BOUNDARY_REQUEST,
  CHANGE_REQUEST,
  REPORT,
  RESOURCE,
  STATUS_UPDATE,
)
from apps.api.utils.security import NotFound, PermissionDenied


IBA = 1
CABANGAN = 2
# barangay ids: 10, 11 in Iba; 20 in Cabangan
DIRECTORY = StaticGeographyDirectory({IBA: [10, 11], CABANGAN: [20]})


def make_engine(statuses=None, memberships=None):
  statuses = statuses or {}
  memberships = memberships or {}
  return AccessEngine(context=AccessContext(
    DIRECTORY,
    status_of=lambda barangay_id: statuses.get(barangay_id, 'normal'),
    membership_of=lambda actor_id: memberships.get(actor_id),
  ))


def report(status='pending', barangay_id=10, reporter_id=100):
  return SimpleNamespace(id=1, status=status, barangay_id=barangay_id, reporter_id=reporter_id)


resident = Actor.from_values(100, 'resident', 10, IBA)
other_resident = Actor.from_values(101, 'resident', 10, IBA)
brgy_responder = Actor.from_values(200, 'barangay_responder', 10, IBA)
other_brgy_responder = Actor.from_values(201, 'barangay_responder', 11, IBA)
muni_responder = Actor.from_values(300, 'municipal_responder', None, IBA)
far_muni_responder = Actor.from_values(301, 'municipal_responder', None, CABANGAN)
legacy_responder = Actor.from_values(400, 'lgu_responder', 10, IBA)
admin = Actor.from_values(500, 'admin')
anonymous = Actor.anonymous()


def test_pending_report_visible_to_owner_scoped_responders_and_admin_only():
  engine = make_engine()
  row = report()
  assert engine.can_perform(resident, READ, REPORT, row)
  assert engine.can_perform(brgy_responder, READ, REPORT, row)
  assert engine.can_perform(legacy_responder, READ, REPORT, row)
  assert engine.can_perform(muni_responder, READ, REPORT, row)
  assert engine.can_perform(admin, READ, REPORT, row)

  assert not engine.can_perform(other_resident, READ, REPORT, row)
  assert not engine.can_perform(other_brgy_responder, READ, REPORT, row)
  assert not engine.can_perform(far_muni_responder, READ, REPORT, row)
  assert not engine.can_perform(anonymous, READ, REPORT, row)


def test_acknowledged_report_becomes_public_without_hiding_from_anyone():
  engine = make_engine()
  row = report()
  before = {a.id for a in (resident, other_resident, brgy_responder, muni_responder, admin)
            if engine.can_perform(a, READ, REPORT, row)}
  row.status = 'acknowledged'
  after = {a.id for a in (resident, other_resident, brgy_responder, muni_responder, admin)
           if engine.can_perform(a, READ, REPORT, row)}
  assert before <= after
  assert engine.can_perform(anonymous, READ, REPORT, row)


def test_report_update_is_scoped_even_when_report_is_public():
  engine = make_engine()
  row = report(status='acknowledged')
  assert engine.can_perform(brgy_responder, UPDATE, REPORT, row)
  assert engine.can_perform(muni_responder, UPDATE, REPORT, row)
  assert not engine.can_perform(other_brgy_responder, UPDATE, REPORT, row)
  assert not engine.can_perform(far_muni_responder, UPDATE, REPORT, row)
  assert not engine.can_perform(resident, UPDATE, REPORT, row)


def test_report_insert_requires_own_reporter_id():
  engine = make_engine()
  assert engine.can_perform(resident, INSERT, REPORT, report(reporter_id=resident.id))
  assert not engine.can_perform(resident, INSERT, REPORT, report(reporter_id=999))
  # barangay responders report only inside their barangay
  assert engine.can_perform(brgy_responder, INSERT, REPORT, report(reporter_id=200, barangay_id=10))
  assert not engine.can_perform(brgy_responder, INSERT, REPORT, report(reporter_id=200, barangay_id=11))
  assert not engine.can_perform(admin, INSERT, REPORT, report(reporter_id=admin.id))


def test_denial_reason_names_evaluated_clauses():
  engine = make_engine()
  decision = engine.decide(other_brgy_responder, UPDATE, REPORT, report())
  assert not decision
  assert decision.clause is None
  assert 'scoped_responder' in decision.evaluated
  assert 'admin_any' in decision.evaluated
  assert 'matched no allow clause' in decision.reason

  allowed = engine.decide(admin, UPDATE, REPORT, report())
  assert allowed.clause == 'admin_any'


def test_require_raises_permission_denied_and_require_visible_raises_not_found():
  engine = make_engine()
  with pytest.raises(PermissionDenied) as exc:
    engine.require(resident, UPDATE, REPORT, report())
  assert exc.value.status_code == 403
  assert exc.value.message == 'You do not have permission to perform this action'
  assert 'report:update' in exc.value.reason

  with pytest.raises(NotFound):
    engine.require_visible(other_resident, REPORT, report())
  with pytest.raises(NotFound):
    engine.require_visible(admin, REPORT, None)


def test_unknown_resource_type_denies():
  engine = make_engine()
  assert not engine.can_perform(admin, READ, 'no_such_table', report())


def test_boundary_request_review_rules():
  engine = make_engine()
  row = SimpleNamespace(requested_by=200, municipality_id=IBA, status='pending')
  assert engine.can_perform(muni_responder, UPDATE, BOUNDARY_REQUEST, row)
  assert engine.can_perform(admin, UPDATE, BOUNDARY_REQUEST, row)
  assert not engine.can_perform(far_muni_responder, UPDATE, BOUNDARY_REQUEST, row)
  assert not engine.can_perform(legacy_responder, UPDATE, BOUNDARY_REQUEST, row)
  assert not engine.can_perform(brgy_responder, UPDATE, BOUNDARY_REQUEST, row)

  row.status = 'approved'
  assert not engine.can_perform(muni_responder, UPDATE, BOUNDARY_REQUEST, row)
  assert not engine.can_perform(admin, UPDATE, BOUNDARY_REQUEST, row)


def test_boundary_request_insert_is_lgu_only():
  engine = make_engine()
  assert engine.can_perform(brgy_responder, INSERT, BOUNDARY_REQUEST, SimpleNamespace(requested_by=200))
  assert engine.can_perform(legacy_responder, INSERT, BOUNDARY_REQUEST, SimpleNamespace(requested_by=400))
  assert not engine.can_perform(resident, INSERT, BOUNDARY_REQUEST, SimpleNamespace(requested_by=100))
  assert not engine.can_perform(admin, INSERT, BOUNDARY_REQUEST, SimpleNamespace(requested_by=500))


def test_status_update_insert_scoped_to_geography():
  engine = make_engine()

  def row(barangay_id, updated_by):
    return SimpleNamespace(barangay_id=barangay_id, updated_by=updated_by)

  assert engine.can_perform(brgy_responder, INSERT, STATUS_UPDATE, row(10, 200))
  assert not engine.can_perform(brgy_responder, INSERT, STATUS_UPDATE, row(11, 200))
  assert engine.can_perform(muni_responder, INSERT, STATUS_UPDATE, row(11, 300))
  assert not engine.can_perform(muni_responder, INSERT, STATUS_UPDATE, row(20, 300))
  assert not engine.can_perform(resident, INSERT, STATUS_UPDATE, row(10, 100))
  assert engine.can_perform(anonymous, READ, STATUS_UPDATE, row(10, 200))


def offer(helping_barangay_id=None, helping_municipality_id=None, recipient=11, created_by=200, delivered_at=None):
  return SimpleNamespace(
    helping_barangay_id=helping_barangay_id,
    helping_municipality_id=helping_municipality_id,
    recipient_barangay_id=recipient,
    barangay_id=recipient,
    created_by=created_by,
    delivered_at=delivered_at,
  )


def test_assistance_insert_requires_recipient_in_need():
  calm = make_engine()
  in_need = make_engine(statuses={11: 'in_need_of_resources', 10: 'active_disaster'})

  row = offer(helping_barangay_id=10)
  assert not calm.can_perform(brgy_responder, INSERT, ASSISTANCE_OFFER, row)
  assert in_need.can_perform(brgy_responder, INSERT, ASSISTANCE_OFFER, row)


def test_assistance_insert_never_from_recipient_barangay():
  engine = make_engine(statuses={10: 'in_need_of_manpower'})
  assert not engine.can_perform(brgy_responder, INSERT, ASSISTANCE_OFFER, offer(helping_barangay_id=10, recipient=10))


def test_assistance_insert_helper_must_be_actor_geography():
  engine = make_engine(statuses={11: 'in_need_of_resources'})
  # barangay responder naming somebody else's barangay
  assert not engine.can_perform(brgy_responder, INSERT, ASSISTANCE_OFFER, offer(helping_barangay_id=20))
  # municipal responder helps from its municipality, even inside it
  assert engine.can_perform(
    muni_responder, INSERT, ASSISTANCE_OFFER, offer(helping_municipality_id=IBA, created_by=300)
  )
  assert not engine.can_perform(
    far_muni_responder, INSERT, ASSISTANCE_OFFER, offer(helping_municipality_id=IBA, created_by=301)
  )
  assert not engine.can_perform(resident, INSERT, ASSISTANCE_OFFER, offer(helping_barangay_id=10, created_by=100))


def test_assistance_delivery_only_by_helping_party_once():
  engine = make_engine()
  row = offer(helping_barangay_id=10)
  assert engine.can_perform(brgy_responder, UPDATE, ASSISTANCE_OFFER, row)
  assert not engine.can_perform(other_brgy_responder, UPDATE, ASSISTANCE_OFFER, row)
  assert not engine.can_perform(admin, UPDATE, ASSISTANCE_OFFER, row)
  row.delivered_at = 'yesterday'
  assert not engine.can_perform(brgy_responder, UPDATE, ASSISTANCE_OFFER, row)


def test_delete_request_only_by_creator_of_that_barangay():
  creator_membership = SimpleNamespace(barangay_id=10, is_creator=True)
  member_membership = SimpleNamespace(barangay_id=11, is_creator=False)
  engine = make_engine(memberships={200: creator_membership, 201: member_membership})

  assert engine.can_perform(brgy_responder, INSERT, CHANGE_REQUEST, SimpleNamespace(barangay_id=10, requested_by=200))
  assert not engine.can_perform(brgy_responder, INSERT, CHANGE_REQUEST, SimpleNamespace(barangay_id=11, requested_by=200))
  assert not engine.can_perform(
    other_brgy_responder, INSERT, CHANGE_REQUEST, SimpleNamespace(barangay_id=11, requested_by=201)
  )


def test_global_resources_visible_to_any_lgu():
  engine = make_engine()
  global_stock = SimpleNamespace(barangay_id=None)
  local_stock = SimpleNamespace(barangay_id=20)
  assert engine.can_perform(brgy_responder, READ, RESOURCE, global_stock)
  assert not engine.can_perform(brgy_responder, READ, RESOURCE, local_stock)
  assert engine.can_perform(far_muni_responder, READ, RESOURCE, local_stock)
  assert not engine.can_perform(resident, READ, RESOURCE, global_stock)


def test_filter_visible_keeps_order():
  engine = make_engine()
  rows = [report(status='resolved'), report(status='pending'), report(status='acknowledged')]
  visible = engine.filter_visible(anonymous, REPORT, rows)
  assert [r.status for r in visible] == ['resolved', 'acknowledged']
