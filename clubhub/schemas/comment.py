"""
Comment Schema

Field table, content screening and moderation helpers for event comments.

Business rules (all on ``content``):
    comment_content: no disallowed word
    comment_repetition: no run of one character beyond the configured limit
    comment_capitals: bounded upper-case ratio once enough letters are present
"""

from typing import Any, Dict, Mapping

import bleach

from ..business.exceptions import BusinessRuleError
from ..business.models import FieldKind, FieldSpec
from ..business.rules import BusinessRule, RuleContext
from ..business.utils import count_ascii_letters, find_disallowed_word, longest_character_run
from ..business.validators import build_validator

COMMENT_STATUSES = ('pending', 'approved', 'rejected')
MODERATION_ACTIONS = ('approve', 'reject', 'flag', 'unflag')

COMMENT_FIELDS = (
    FieldSpec(name='event_id', kind=FieldKind.IDENTIFIER, required=True),
    FieldSpec(name='user_id', kind=FieldKind.IDENTIFIER, required=True),
    FieldSpec(name='content', kind=FieldKind.STRING, required=True, min_length=1, max_length=1000),
    FieldSpec(name='parent_comment_id', kind=FieldKind.IDENTIFIER, nullable=True),
    FieldSpec(name='status', kind=FieldKind.STRING, default='pending', allowed=COMMENT_STATUSES),
    FieldSpec(name='flagged', kind=FieldKind.BOOLEAN, default=False),
)

# A comment never moves to another event, author or thread
COMMENT_IMMUTABLE_FIELDS = ('event_id', 'user_id', 'parent_comment_id')


def check_content(record: Mapping[str, Any], context: RuleContext) -> None:
    content = record.get('content')
    if content is not None and find_disallowed_word(content, context.settings.comment_disallowed_words):
        raise BusinessRuleError('content', 'Comment contains inappropriate content and will be reviewed')


def check_repetition(record: Mapping[str, Any], context: RuleContext) -> None:
    content = record.get('content')
    if content is None:
        return
    _, run_length = longest_character_run(content)
    if run_length > context.settings.comment_max_char_run:
        raise BusinessRuleError('content', 'Comment contains excessive repetition')


def check_capitals(record: Mapping[str, Any], context: RuleContext) -> None:
    content = record.get('content')
    if content is None:
        return
    upper, total = count_ascii_letters(content)
    settings = context.settings
    if total > settings.comment_caps_min_letters and upper / total > settings.comment_max_caps_ratio:
        raise BusinessRuleError('content', 'Comment contains excessive capital letters')


COMMENT_RULES = (
    BusinessRule('comment_content', {'content'}, check_content),
    BusinessRule('comment_repetition', {'content'}, check_repetition),
    BusinessRule('comment_capitals', {'content'}, check_capitals),
)

CommentSchema = build_validator(
    'comment',
    COMMENT_FIELDS,
    rules=COMMENT_RULES,
    immutable_fields=COMMENT_IMMUTABLE_FIELDS,
)


def validate_moderation_action(action: Any) -> Dict[str, str]:
    """Error mapping for a moderation action; empty when the action is known."""
    if action in MODERATION_ACTIONS:
        return {}
    return {'action': 'Invalid moderation action. Allowed: ' + ', '.join(MODERATION_ACTIONS)}


def _open_in_new_tab(attrs, new=False):
    attrs[(None, 'target')] = '_blank'
    attrs[(None, 'rel')] = 'noopener noreferrer'
    return attrs


def sanitize_content(content: str) -> str:
    """
    Prepare comment text for display.

    Strips all markup, escapes what remains and turns bare http(s) URLs into
    links that open in a new tab.

    Example:
        sanitize_content('<b>Slides</b> at https://example.com')
        # 'Slides at <a href="https://example.com" target="_blank" rel="noopener noreferrer">https://example.com</a>'
    """
    text = bleach.clean(content, tags=[], strip=True)
    return bleach.linkify(text, callbacks=[_open_in_new_tab], parse_email=False)
