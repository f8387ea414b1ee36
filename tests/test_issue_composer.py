"""Tests for composing GitHub issue import payloads."""

import unittest
from unittest.mock import Mock

from trac_github_migrator.converters import TracWikiConverter
from trac_github_migrator.identity_resolver import IdentityResolver
from trac_github_migrator.models import EventKind, MergedEvent
from trac_github_migrator.orchestrator import IssueComposer

from conftest import BASE_TIME, make_ticket


def comment_event(text, offset):
    return MergedEvent(kind=EventKind.COMMENT, time=BASE_TIME + offset, author='bob', text=text)


class TestIssueComposer(unittest.TestCase):
    def setUp(self):
        store = Mock()
        store.get_session_attribute.return_value = None
        self.resolver = IdentityResolver(store, {'alice': 'alice-gh'})
        self.composer = IssueComposer(TracWikiConverter(), self.resolver)

    def test_ticket_without_history(self):
        """Body holds exactly the metadata line and the translated description."""
        ticket = make_ticket(
            3,
            description="It '''crashes'''",
            component='core',
            priority='major',
            keywords='crash segfault'
        )
        issue = self.composer.compose(ticket, [], [], None)

        self.assertEqual(
            issue.body,
            '**component:** core | **priority:** major | **keywords:** crash segfault\n\n'
            '_@alice-gh_ created the issue\n\n'
            '> It **crashes**'
        )
        self.assertEqual(issue.comments, [])
        self.assertEqual(issue.title, 'Ticket 3')
        self.assertEqual(issue.created_at, '2020-01-01T00:00:00Z')
        self.assertFalse(issue.closed)

    def test_no_metadata_no_description(self):
        issue = self.composer.compose(make_ticket(reporter='zed'), [], [], None)
        self.assertEqual(issue.body, '_zed_ created the issue')

    def test_events_become_comments(self):
        events = [comment_event('first', 60), comment_event('second', 120 * 1000000)]
        issue = self.composer.compose(make_ticket(), events, ['bug'], None)

        self.assertEqual([c.body for c in issue.comments], ['first', 'second'])
        self.assertEqual(issue.comments[1].created_at, '2020-01-01T00:02:00Z')
        self.assertEqual(issue.labels, ['bug'])

    def test_single_post_folds_history_into_body(self):
        events = [comment_event('first', 1), comment_event('second', 2)]
        issue = self.composer.compose(make_ticket(component='ui'), events, [], None, single_post=True)

        self.assertEqual(
            issue.body,
            '**component:** ui\n\n_@alice-gh_ created the issue\n\n___\n\nfirst\n\n___\n\nsecond'
        )
        self.assertEqual(issue.comments, [])

    def test_single_post_default_from_constructor(self):
        composer = IssueComposer(TracWikiConverter(), self.resolver, single_post=True)
        issue = composer.compose(make_ticket(), [comment_event('x', 1)], [], None)

        self.assertEqual(issue.comments, [])
        self.assertTrue(issue.body.endswith('___\n\nx'))

    def test_closed_ticket_times(self):
        ticket = make_ticket(status='closed', resolution='fixed', changetime=BASE_TIME + 3600 * 1000000)
        issue = self.composer.compose(ticket, [], [], BASE_TIME + 60 * 1000000)
        payload = issue.to_payload()['issue']

        self.assertTrue(payload['closed'])
        self.assertEqual(payload['closed_at'], '2020-01-01T00:01:00Z')
        self.assertEqual(payload['updated_at'], '2020-01-01T01:00:00Z')
        self.assertTrue(issue.body.startswith('**resolution:** fixed\n\n'))

    def test_open_ticket_has_no_closed_at(self):
        issue = self.composer.compose(make_ticket(status='reopened'), [], [], BASE_TIME)
        payload = issue.to_payload()['issue']

        self.assertFalse(payload['closed'])
        self.assertNotIn('closed_at', payload)
        self.assertNotIn('updated_at', payload)

    def test_payload_shape(self):
        payload = self.composer.compose(make_ticket(), [comment_event('c', 1)], ['bug'], None).to_payload()

        self.assertEqual(set(payload), {'issue', 'comments'})
        self.assertEqual(payload['issue']['labels'], ['bug'])
        self.assertEqual(payload['comments'], [{'body': 'c', 'created_at': '2020-01-01T00:00:00Z'}])


if __name__ == '__main__':
    unittest.main()
