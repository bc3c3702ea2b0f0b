"""Authentication helpers: password hashing, actor loading, registration.

The JWT only proves who the caller is. Role and affiliation are always read
fresh from ``users`` so a revoked role or a closed membership takes effect on
the next request.
"""
from functools import wraps

import bcrypt
from flask import g, current_app
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity
from sqlalchemy import func

from apps.api import db
from apps.api.models.membership import BarangayMembership
from apps.api.models.municipality import Barangay, Municipality
from apps.api.models.user import User
from apps.api.utils.audit import log_action, AuditAction
from apps.api.utils.identity import (
    Actor,
    BARANGAY_SCOPED_ROLES,
    LGU_ROLES,
    MUNICIPAL_SCOPED_ROLES,
    RESIDENT,
    SELF_REGISTER_ROLES,
    load_actor,
    normalize_role,
)
from apps.api.utils.security import APIError, NotFound, PermissionDenied, StateConflict
from apps.api.utils.time import utc_now
from apps.api.utils.validators import (
    ValidationError,
    validate_email,
    validate_name,
    validate_phone,
    validate_positive_int,
    validate_url,
)


MIN_PASSWORD_LENGTH = 8


class AuthenticationRequired(APIError):
    def __init__(self, message: str = 'Authentication required'):
        super().__init__(message, code='NO_AUTH', status_code=401)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def find_user_by_email(email):
    if not email:
        return None
    return User.query.filter(func.lower(User.email) == str(email).strip().lower()).first()


# ---------------------------------------------------------------------------
# Request actor
# ---------------------------------------------------------------------------

def current_actor() -> Actor:
    """Actor for the current request; anonymous when no valid token is sent."""
    if 'actor' in g:
        return g.actor
    verify_jwt_in_request(optional=True)
    identity = get_jwt_identity()
    actor = load_actor(identity) if identity is not None else None
    g.actor = actor or Actor.anonymous()
    return g.actor


def actor_required(fn):
    """Require a valid token for an active account."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        actor = current_actor()
        if not actor.is_authenticated:
            raise AuthenticationRequired('Account not found or inactive')
        return fn(*args, **kwargs)
    return wrapper


def admin_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        actor = current_actor()
        if not actor.is_authenticated:
            raise AuthenticationRequired('Account not found or inactive')
        if not actor.is_admin:
            current_app.logger.warning("Admin access denied: actor=%s role=%s", actor.id, actor.role)
            raise PermissionDenied(reason=f'role {actor.role} is not an admin role')
        return fn(*args, **kwargs)
    return wrapper


# ---------------------------------------------------------------------------
# Registration and login
# ---------------------------------------------------------------------------

def is_proof_pending(user) -> bool:
    return bool(
        user is not None
        and user.role in LGU_ROLES
        and user.employment_proof_url
        and not user.employment_proof_verified
    )


def check_login_eligibility(email) -> dict:
    """Whether ``email`` belongs to a responder whose proof is still unverified.

    Unknown emails answer ``proof_pending: False`` so the check does not reveal
    which addresses are registered.
    """
    return {'proof_pending': is_proof_pending(find_user_by_email(email))}


def register_actor(data: dict) -> User:
    """
    Create an account.

    Raises:
        ValidationError: bad fields, missing geography or proof, admin role requested
        StateConflict: email already registered
    """
    email = validate_email(data.get('email'))
    password = data.get('password') or ''
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters', field='password')
    full_name = validate_name(data.get('full_name'), field='full_name')
    phone = validate_phone(data.get('phone')) if data.get('phone') else None

    role = normalize_role(data.get('role') or RESIDENT)
    if role not in SELF_REGISTER_ROLES:
        raise ValidationError('This role cannot be self-registered', field='role')

    proof_url = None
    if role in LGU_ROLES:
        if not data.get('employment_proof_url'):
            raise ValidationError('Proof of employment is required for responder accounts', field='employment_proof_url')
        proof_url = validate_url(data.get('employment_proof_url'), field='employment_proof_url')

    barangay = None
    municipality_id = None
    if role in MUNICIPAL_SCOPED_ROLES:
        municipality_id = validate_positive_int(data.get('municipality_id'), 'municipality_id')
        if db.session.get(Municipality, municipality_id) is None:
            raise ValidationError('Unknown municipality', field='municipality_id')
    elif data.get('barangay_id') not in (None, ''):
        barangay_id = validate_positive_int(data.get('barangay_id'), 'barangay_id')
        barangay = db.session.get(Barangay, barangay_id)
        if barangay is None:
            raise ValidationError('Unknown barangay', field='barangay_id')
        if role in BARANGAY_SCOPED_ROLES and not barangay.is_bounded:
            raise ValidationError('Barangay has no approved boundary yet', field='barangay_id')
        municipality_id = barangay.municipality_id

    if find_user_by_email(email) is not None:
        raise StateConflict('Email already registered', code='EMAIL_EXISTS')

    user = User(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        phone=phone,
        role=role,
        barangay_id=barangay.id if barangay else None,
        municipality_id=municipality_id,
        employment_proof_url=proof_url,
    )
    db.session.add(user)
    db.session.flush()

    if barangay is not None and role in BARANGAY_SCOPED_ROLES:
        db.session.add(BarangayMembership(user_id=user.id, barangay_id=barangay.id, is_creator=False))

    log_action(Actor.from_user(user), AuditAction.ACTOR_REGISTERED, 'user', user.id, {'role': role})
    db.session.commit()
    current_app.logger.info("Registered %s account %s", role, user.id)
    return user


def authenticate(email, password) -> User:
    """Return the user for valid credentials or raise."""
    user = find_user_by_email(email)
    if is_proof_pending(user):
        raise APIError(
            'Your proof of employment is still being reviewed',
            code='PROOF_PENDING',
            status_code=403,
        )
    if user is None or not verify_password(password or '', user.password_hash):
        raise AuthenticationRequired('Invalid credentials')
    if not user.is_active:
        raise APIError('Account is deactivated', code='ACCOUNT_INACTIVE', status_code=403)
    user.last_login = utc_now()
    db.session.commit()
    return user


def verify_employment_proof(admin, user_id) -> User:
    """Mark a responder's employment proof as verified so they can log in."""
    if not admin.is_admin:
        raise PermissionDenied(reason=f'role {admin.role} cannot verify employment proof')
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound('user')
    if not user.employment_proof_url:
        raise StateConflict('Account has no employment proof on file', code='NO_PROOF')
    if user.employment_proof_verified:
        raise StateConflict('Employment proof is already verified', code='ALREADY_VERIFIED')

    user.employment_proof_verified = True
    user.employment_proof_verified_at = utc_now()
    log_action(admin, AuditAction.EMPLOYMENT_PROOF_VERIFIED, 'user', user.id)
    db.session.commit()
    return user
