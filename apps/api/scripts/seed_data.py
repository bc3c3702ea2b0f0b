"""
Seed script to populate reference data.
Run this after the database tables exist (``flask db upgrade``).

Usage:
    cd apps/api
    python scripts/seed_data.py
"""
import sys
import os
# Ensure project root is importable so `apps.api.*` works
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '../../..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from apps.api.app import create_app
from apps.api import db
from apps.api.models.municipality import Municipality
from apps.api.models.report import ReportType
from apps.api.models.marker import MarkerType
from apps.api.models.resource import ResourceType


# Zambales municipalities. Barangays are not seeded: each one appears when its
# boundary request is approved.
ZAMBALES_MUNICIPALITIES = [
    ('Botolan', 'ZMB-BOT'),
    ('Cabangan', 'ZMB-CAB'),
    ('Candelaria', 'ZMB-CAN'),
    ('Castillejos', 'ZMB-CAS'),
    ('Iba', 'ZMB-IBA'),
    ('Masinloc', 'ZMB-MAS'),
    ('Palauig', 'ZMB-PAL'),
    ('San Antonio', 'ZMB-SAN'),
    ('San Felipe', 'ZMB-SFE'),
    ('San Marcelino', 'ZMB-SMA'),
    ('San Narciso', 'ZMB-SNA'),
    ('Santa Cruz', 'ZMB-STC'),
    ('Subic', 'ZMB-SUB'),
]

REPORT_TYPES = [
    ('Flood', 'flood'),
    ('Landslide', 'landslide'),
    ('Fire', 'fire'),
    ('Road Blocked', 'road-blocked'),
    ('Power Outage', 'power-outage'),
    ('Medical Emergency', 'medical-emergency'),
    ('Other', 'other'),
]

MARKER_TYPES = [
    ('Evacuation Center', 'evacuation-center'),
    ('Health Station', 'health-station'),
    ('Relief Distribution', 'relief-distribution'),
    ('Hazard Zone', 'hazard-zone'),
    ('Command Post', 'command-post'),
]

RESOURCE_TYPES = [
    ('Food Packs', 'food-packs', 'packs'),
    ('Drinking Water', 'drinking-water', 'liters'),
    ('Hygiene Kits', 'hygiene-kits', 'kits'),
    ('Blankets', 'blankets', 'pcs'),
    ('Medicine', 'medicine', 'boxes'),
    ('Sandbags', 'sandbags', 'pcs'),
]


def seed_municipalities():
    created = 0
    for name, code in ZAMBALES_MUNICIPALITIES:
        if Municipality.query.filter_by(code=code).first():
            continue
        db.session.add(Municipality(name=name, code=code, region='Central Luzon'))
        created += 1
    db.session.commit()
    print(f"Municipalities: {created} created, {len(ZAMBALES_MUNICIPALITIES) - created} already present")


def _seed_slugged(model, rows, label, extra_by_slug=None):
    created = 0
    for order, row in enumerate(rows, start=1):
        name, slug = row[0], row[1]
        if model.query.filter_by(slug=slug).first():
            continue
        fields = {'name': name, 'slug': slug}
        if hasattr(model, 'sort_order'):
            fields['sort_order'] = order
        fields.update((extra_by_slug or {}).get(slug, {}))
        db.session.add(model(**fields))
        created += 1
    db.session.commit()
    print(f"{label}: {created} created")


def seed_all():
    seed_municipalities()
    _seed_slugged(ReportType, REPORT_TYPES, 'Report types')
    _seed_slugged(MarkerType, MARKER_TYPES, 'Marker types')
    _seed_slugged(
        ResourceType,
        RESOURCE_TYPES,
        'Resource types',
        {slug: {'unit': unit} for _, slug, unit in RESOURCE_TYPES},
    )


if __name__ == '__main__':
    app = create_app()
    with app.app_context():
        seed_all()
    print("Seeding complete.")
