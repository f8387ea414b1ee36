"""Shared fixtures: ticket factories and a throwaway Trac database."""

import sys
from pathlib import Path
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine, text

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from trac_github_migrator.converters import TracWikiConverter  # noqa: E402
from trac_github_migrator.identity_resolver import IdentityResolver  # noqa: E402
from trac_github_migrator.models import AttachmentEvent, ChangeEvent, Ticket  # noqa: E402

# 2020-01-01T00:00:00Z in Trac microseconds
BASE_TIME = 1577836800 * 1000000

TRAC_SCHEMA = [
    """CREATE TABLE ticket (
        id integer PRIMARY KEY,
        type text, time integer, changetime integer, component text,
        severity text, priority text, owner text, reporter text, cc text,
        version text, milestone text, status text, resolution text,
        summary text, description text, keywords text
    )""",
    """CREATE TABLE ticket_change (
        ticket integer, time integer, author text, field text,
        oldvalue text, newvalue text,
        UNIQUE (ticket, time, field)
    )""",
    """CREATE TABLE attachment (
        type text, id text, filename text, size integer, time integer,
        description text, author text, ipnr text,
        UNIQUE (type, id, filename)
    )""",
    """CREATE TABLE session_attribute (
        sid text, authenticated integer, name text, value text,
        UNIQUE (sid, authenticated, name)
    )""",
]


def make_ticket(ticket_id=1, **overrides):
    values = {
        'summary': f'Ticket {ticket_id}',
        'reporter': 'alice',
        'status': 'new',
        'time': BASE_TIME,
    }
    values.update(overrides)
    return Ticket(id=ticket_id, **values)


def make_change(field, old, new, time_offset=1, author='bob', ticket_id=1):
    return ChangeEvent(
        ticket_id=ticket_id,
        field=field,
        oldvalue=old,
        newvalue=new,
        author=author,
        time=BASE_TIME + time_offset
    )


def make_attachment(filename, size=2048, time_offset=1, description='', author='bob', ticket_id=1):
    return AttachmentEvent(
        ticket_id=ticket_id,
        filename=filename,
        description=description,
        size=size,
        author=author,
        time=BASE_TIME + time_offset
    )


@pytest.fixture
def trac_engine(tmp_path):
    """SQLite database with the Trac tables used by the migrator."""
    engine = create_engine(f"sqlite:///{tmp_path / 'trac.db'}")
    with engine.begin() as connection:
        for statement in TRAC_SCHEMA:
            connection.execute(text(statement))
    yield engine
    engine.dispose()


@pytest.fixture
def session_store():
    """Stand-in for TracStore answering session attribute lookups from a dict."""
    emails = {}
    store = Mock()
    store.emails = emails
    store.get_session_attribute.side_effect = lambda sid, name: emails.get(sid)
    return store


@pytest.fixture
def resolver(session_store):
    return IdentityResolver(session_store)


@pytest.fixture
def converter():
    return TracWikiConverter()
