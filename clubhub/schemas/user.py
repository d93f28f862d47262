"""
User Schema

Field table, identity format rules and the login payload check for student
accounts.

Business rules:
    student_id_format: 2-4 upper-case letters followed by 4-8 digits
    phone_format: Kenyan mobile or landline number once separators are removed

The ``email`` field is bound to the configured official domain as a field
constraint, so a foreign address fails during coercion rather than at the
rule stage. After a successful create or update the plain-text password is
replaced by a werkzeug password hash; ``is_valid`` never hashes.
"""

import re
from typing import Any, Dict, Mapping

from email_validator import EmailNotValidError, validate_email
from werkzeug.security import generate_password_hash

from ..business.exceptions import BusinessRuleError
from ..business.models import FieldKind, FieldSpec
from ..business.rules import BusinessRule, RuleContext
from ..business.validators import build_validator

USER_ROLES = ('student', 'admin', 'club_leader')
USER_STATUSES = ('active', 'inactive', 'suspended')

STUDENT_ID_PATTERN = re.compile(r'^[A-Z]{2,4}\d{4,8}$')
PHONE_SEPARATORS = re.compile(r'[\s\-\(\)]')
KENYAN_PHONE_PATTERN = re.compile(r'^\+254[17]\d{8}$|^0[17]\d{8}$')

USER_FIELDS = (
    FieldSpec(name='student_id', kind=FieldKind.STRING, required=True, min_length=8, max_length=20),
    FieldSpec(name='first_name', kind=FieldKind.STRING, required=True, min_length=2, max_length=50),
    FieldSpec(name='last_name', kind=FieldKind.STRING, required=True, min_length=2, max_length=50),
    FieldSpec(name='email', kind=FieldKind.EMAIL, required=True, max_length=100),
    FieldSpec(name='password', kind=FieldKind.STRING, required=True, min_length=8, max_length=255),
    FieldSpec(name='phone', kind=FieldKind.STRING, default='', max_length=20),
    FieldSpec(name='course', kind=FieldKind.STRING, default='', max_length=100),
    FieldSpec(name='year_of_study', kind=FieldKind.INTEGER, default=1, minimum=1, maximum=6),
    FieldSpec(name='profile_image', kind=FieldKind.STRING, default='', max_length=500),
    FieldSpec(name='role', kind=FieldKind.STRING, default='student', allowed=USER_ROLES),
    FieldSpec(name='status', kind=FieldKind.STRING, default='active', allowed=USER_STATUSES),
    FieldSpec(name='last_login', kind=FieldKind.TIMESTAMP, nullable=True),
    FieldSpec(name='refresh_token', kind=FieldKind.STRING, nullable=True, max_length=255),
    FieldSpec(name='refresh_token_expires_at', kind=FieldKind.TIMESTAMP, nullable=True),
)


def check_student_id(record: Mapping[str, Any], context: RuleContext) -> None:
    student_id = record.get('student_id')
    if student_id is not None and not STUDENT_ID_PATTERN.match(student_id):
        raise BusinessRuleError(
            'student_id',
            'Student ID must follow the format: 2-4 letters followed by 4-8 digits (e.g., USIU2023001)',
        )


def check_phone(record: Mapping[str, Any], context: RuleContext) -> None:
    phone = record.get('phone')
    if not phone:
        return
    if not KENYAN_PHONE_PATTERN.match(PHONE_SEPARATORS.sub('', phone)):
        raise BusinessRuleError(
            'phone',
            'Phone number must be a valid Kenyan number format (e.g., +254712345678 or 0712345678)',
        )


def hash_password(record: Dict[str, Any]) -> None:
    if record.get('password'):
        record['password'] = generate_password_hash(record['password'])


USER_RULES = (
    BusinessRule('student_id_format', {'student_id'}, check_student_id),
    BusinessRule('phone_format', {'phone'}, check_phone),
)

UserSchema = build_validator(
    'user',
    USER_FIELDS,
    rules=USER_RULES,
    official_domain_fields=('email',),
    finalizers=(hash_password,),
)


def validate_login(data: Mapping[str, Any]) -> Dict[str, str]:
    """
    Check a login payload before credentials are looked up.

    Returns:
        Error mapping, empty when both credentials are present and the
        e-mail address is well formed
    """
    errors: Dict[str, str] = {}
    email = data.get('email')

    if not email:
        errors['email'] = 'Email is required'
    else:
        try:
            validate_email(str(email).strip(), check_deliverability=False)
        except EmailNotValidError:
            errors['email'] = 'Invalid email format'

    if not data.get('password'):
        errors['password'] = 'Password is required'

    return errors
