"""Hazard report workflow.

Reports start ``pending`` and are visible only to the reporter, scoped
responders and admins. Once acknowledged they become public. Status only
moves forward: pending -> acknowledged -> resolved.
"""
from typing import List, Optional

from flask import current_app
from sqlalchemy import or_, select

from apps.api import db
from apps.api.models.municipality import Barangay
from apps.api.models.report import (
    Report,
    ReportNote,
    ReportType,
    REPORT_STATUSES,
    REPORT_PENDING,
    REPORT_ACKNOWLEDGED,
    REPORT_RESOLVED,
    PUBLIC_REPORT_STATUSES,
)
from apps.api.utils.access import access_engine, INSERT, UPDATE
from apps.api.utils.identity import BARANGAY_SCOPED_ROLES, MUNICIPAL_SCOPED_ROLES
from apps.api.utils.policies import REPORT, REPORT_NOTE
from apps.api.utils.realtime import note_change
from apps.api.utils.security import NotFound, StateConflict
from apps.api.utils.time import utc_now
from apps.api.utils.validators import (
    ValidationError,
    sanitize_string,
    validate_coordinate,
    validate_name,
    validate_positive_int,
    validate_url_list,
)


def create_report(actor, data: dict, engine=None) -> Report:
    engine = engine or access_engine()

    barangay_id = validate_positive_int(data.get('barangay_id'), 'barangay_id')
    report_type_id = validate_positive_int(data.get('report_type_id'), 'report_type_id')
    title = sanitize_string(data.get('title'), max_length=200)
    description = sanitize_string(data.get('description'))
    if not title and not description:
        raise ValidationError('A title or description is required', field='description')
    gps_lat = validate_coordinate(data.get('gps_lat'), 'gps_lat', 90)
    gps_lng = validate_coordinate(data.get('gps_lng'), 'gps_lng', 180)
    max_urls = current_app.config.get('MAX_PHOTO_URLS', 10)
    photo_urls = validate_url_list(data.get('photo_urls'), 'photo_urls', max_urls)
    video_urls = validate_url_list(data.get('video_urls'), 'video_urls', max_urls)

    if db.session.get(ReportType, report_type_id) is None:
        raise ValidationError('Unknown report type', field='report_type_id')
    if db.session.get(Barangay, barangay_id) is None:
        raise ValidationError('Unknown barangay', field='barangay_id')

    report = Report(
        reporter_id=actor.id,
        barangay_id=barangay_id,
        report_type_id=report_type_id,
        status=REPORT_PENDING,
        title=title,
        description=description,
        gps_lat=gps_lat,
        gps_lng=gps_lng,
        photo_urls=photo_urls,
        video_urls=video_urls,
    )
    engine.require(actor, INSERT, REPORT, report)

    db.session.add(report)
    db.session.commit()
    current_app.logger.info("Report %s filed in barangay %s by %s", report.id, barangay_id, actor.id)
    return report


def _readable_candidates(actor):
    """SQL superset of the report read rule; the engine still decides per row."""
    if actor.is_admin:
        return None
    candidates = [Report.status.in_(PUBLIC_REPORT_STATUSES)]
    if actor.id is not None:
        candidates.append(Report.reporter_id == actor.id)
    if actor.role in BARANGAY_SCOPED_ROLES and actor.barangay_id is not None:
        candidates.append(Report.barangay_id == actor.barangay_id)
    elif actor.role in MUNICIPAL_SCOPED_ROLES and actor.municipality_id is not None:
        candidates.append(Report.barangay_id.in_(
            select(Barangay.id).where(Barangay.municipality_id == actor.municipality_id)
        ))
    return or_(*candidates)


def list_reports(actor, barangay_id=None, status=None, limit: int = 100, engine=None) -> List[Report]:
    engine = engine or access_engine()
    query = Report.query
    if barangay_id:
        query = query.filter(Report.barangay_id == barangay_id)
    if status:
        if status not in REPORT_STATUSES:
            raise ValidationError('Invalid status filter', field='status')
        query = query.filter(Report.status == status)
    candidates = _readable_candidates(actor)
    if candidates is not None:
        query = query.filter(candidates)
    query = query.order_by(Report.created_at.desc(), Report.id.desc())
    return engine.visible_page(actor, REPORT, query, max(1, limit))


def get_report(actor, report_id, engine=None) -> Report:
    engine = engine or access_engine()
    return engine.require_visible(actor, REPORT, db.session.get(Report, report_id))


def update_report_status(actor, report_id, status, engine=None) -> Report:
    """Move a report forward. Backward or repeated moves raise ``StateConflict``."""
    engine = engine or access_engine()

    if status not in REPORT_STATUSES:
        raise ValidationError(f"Invalid status. Allowed: {', '.join(REPORT_STATUSES)}", field='status')

    report = get_report(actor, report_id, engine)
    current = report.status
    if REPORT_STATUSES.index(status) <= REPORT_STATUSES.index(current):
        raise StateConflict(f'Report is already {current}', code='INVALID_TRANSITION')
    engine.require(actor, UPDATE, REPORT, report)

    now = utc_now()
    values = {Report.status: status, Report.updated_at: now}
    if status in (REPORT_ACKNOWLEDGED, REPORT_RESOLVED) and report.acknowledged_at is None:
        values[Report.acknowledged_at] = now
        values[Report.acknowledged_by] = actor.id
    if status == REPORT_RESOLVED:
        values[Report.resolved_at] = now
        values[Report.resolved_by] = actor.id

    updated = Report.query.filter(
        Report.id == report.id,
        Report.status == current,
    ).update(values, synchronize_session=False)
    if updated != 1:
        db.session.rollback()
        raise StateConflict('Report status changed concurrently', code='INVALID_TRANSITION')
    db.session.refresh(report)
    note_change(db.session, report)
    db.session.commit()
    current_app.logger.info("Report %s moved %s -> %s by %s", report.id, current, status, actor.id)
    return report


def add_report_note(actor, report_id, body, engine=None) -> ReportNote:
    engine = engine or access_engine()

    body = validate_name(body, field='body', max_length=5000)
    report = get_report(actor, report_id, engine)
    note = ReportNote(report_id=report.id, author_id=actor.id, body=body)
    note.report = report
    engine.require(actor, INSERT, REPORT_NOTE, note)

    db.session.add(note)
    db.session.commit()
    return note


def list_report_notes(actor, report_id, engine=None) -> List[ReportNote]:
    engine = engine or access_engine()
    report = get_report(actor, report_id, engine)
    notes = report.notes.order_by(ReportNote.created_at.asc(), ReportNote.id.asc()).all()
    return engine.filter_visible(actor, REPORT_NOTE, notes)


def list_report_types() -> List[ReportType]:
    return ReportType.query.order_by(ReportType.sort_order.asc(), ReportType.name.asc()).all()


def report_type_by_slug(slug) -> Optional[ReportType]:
    return ReportType.query.filter_by(slug=slug).first()
